"""
Harness errors

Every error is local to a single test case. Nothing here is retried.
"""
from typing import Optional


class HarnessError(Exception):
    """Base class for all harness errors"""


class LoadError(HarnessError):
    """Test definition file is unreadable, not YAML or missing fields"""

    def __init__(self, path, message: str):
        self.path = str(path)
        super().__init__(f"{self.path}: {message}")


class ConversionError(HarnessError):
    """YAML payload cannot be mapped onto the SOAP request XML"""


class TransportError(HarnessError):
    """SOAP call failed on the network or returned a non-success status"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class OutputTimeoutError(HarnessError):
    """No CSV output appeared in the output directory in time"""


class MismatchError(HarnessError):
    """Produced CSV does not match the expected CSV"""

    def __init__(self, message: str, diff=None):
        self.diff = diff
        super().__init__(message)


class StageError(HarnessError):
    """A pipeline stage failed; wraps the underlying cause"""

    def __init__(self, stage, cause: BaseException):
        self.stage = stage
        self.cause = cause
        stage_name = getattr(stage, 'value', stage)
        super().__init__(f"stage '{stage_name}' failed: {type(cause).__name__}: {cause}")

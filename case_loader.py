"""
Test Case Loader
Reads YAML test definitions from a directory
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import yaml
from jsonschema import Draft7Validator

from exceptions import LoadError

logger = logging.getLogger(__name__)

# JSON Schema for a test definition file
TEST_CASE_SCHEMA = {
    "type": "object",
    "properties": {
        "endpoint": {"type": "string", "minLength": 1},
        "soap_action": {"type": "string", "minLength": 1},
        "request_payload": {"type": "string"},
        "expected_output_csv": {"type": "string"},
        "expected_output_csv_file_location": {"type": "string", "minLength": 1}
    },
    "required": ["endpoint", "soap_action", "request_payload"],
    "oneOf": [
        {"required": ["expected_output_csv"]},
        {"required": ["expected_output_csv_file_location"]}
    ]
}

_validator = Draft7Validator(TEST_CASE_SCHEMA)


@dataclass(frozen=True)
class TestCase:
    """One end-to-end upload scenario"""
    __test__ = False  # not a pytest class

    name: str
    source_path: Path
    endpoint: str
    soap_action: str
    request_payload: str
    expected_output_csv: Optional[str] = None
    expected_output_csv_file_location: Optional[str] = None

    @property
    def soap_method(self) -> str:
        """SOAP method name: the part of soap_action after the last '/'"""
        return self.soap_action.rsplit('/', 1)[-1]

    def expected_csv_text(self) -> str:
        """
        Expected CSV content, inline or read from the referenced file

        A relative file location is resolved against the definition file's
        directory.
        """
        if self.expected_output_csv is not None:
            return self.expected_output_csv

        location = Path(self.expected_output_csv_file_location)
        if not location.is_absolute():
            location = self.source_path.parent / location

        try:
            return location.read_text(encoding='utf-8')
        except OSError as e:
            raise LoadError(self.source_path, f"Cannot read expected CSV '{location}': {e}") from e

    def as_params(self) -> Tuple[str, str, str, str]:
        """(endpoint, soap_action, request_payload, expected_output_csv)"""
        return self.endpoint, self.soap_action, self.request_payload, self.expected_csv_text()


def load_test_case(path) -> TestCase:
    """
    Load and validate a single test definition file

    Raises:
        LoadError: If the file is unreadable, not YAML or fails validation
    """
    path = Path(path)

    try:
        content = path.read_text(encoding='utf-8')
    except OSError as e:
        raise LoadError(path, f"Cannot read test definition: {e}") from e

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise LoadError(path, f"Invalid YAML: {e}") from e

    errors = sorted(_validator.iter_errors(data), key=lambda error: list(error.path))
    if errors:
        messages = "; ".join(_describe_error(error) for error in errors)
        raise LoadError(path, f"Invalid test definition: {messages}")

    logger.debug(f"Loaded test case {path.stem} from {path}")

    return TestCase(
        name=path.stem,
        source_path=path,
        endpoint=data['endpoint'],
        soap_action=data['soap_action'],
        request_payload=data['request_payload'],
        expected_output_csv=data.get('expected_output_csv'),
        expected_output_csv_file_location=data.get('expected_output_csv_file_location')
    )


def _describe_error(error) -> str:
    if error.validator == 'oneOf':
        return "exactly one of expected_output_csv / expected_output_csv_file_location is required"
    location = '.'.join(str(part) for part in error.path)
    return f"{location}: {error.message}" if location else error.message


@dataclass(frozen=True)
class CaseEntry:
    """A discovered definition file: its TestCase, or the LoadError it raised"""
    name: str
    path: Path
    test_case: Optional[TestCase] = None
    error: Optional[LoadError] = None

    def load(self) -> TestCase:
        """
        Raises:
            LoadError: If this definition file failed to load
        """
        if self.error is not None:
            raise self.error
        return self.test_case


def discover_test_cases(directory) -> Iterator[CaseEntry]:
    """
    Yield one CaseEntry per *.yaml file in directory (non-recursive)

    Files are visited in name order so test ids are stable. A malformed
    file is not skipped: its entry carries the LoadError and discovery
    goes on with the remaining files.
    """
    directory = Path(directory)

    if not directory.is_dir():
        raise LoadError(directory, "Test case directory does not exist")

    files = sorted(directory.glob('*.yaml'))
    logger.info(f"Found {len(files)} test definitions in {directory}")

    for file_path in files:
        try:
            test_case = load_test_case(file_path)
        except LoadError as e:
            logger.error(f"Invalid test definition: {e}")
            yield CaseEntry(file_path.stem, file_path, error=e)
            continue
        yield CaseEntry(file_path.stem, file_path, test_case=test_case)


def load_test_cases(directory) -> List[Tuple[str, str, str, str]]:
    """
    Parameter tuples for every test definition in directory

    Raises:
        LoadError: For the first definition file that failed to load
    """
    return [entry.load().as_params() for entry in discover_test_cases(directory)]

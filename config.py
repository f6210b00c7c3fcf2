"""
Configuration module for the SOAP upload E2E harness
"""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent


class Config:
    """Harness configuration"""

    # Test definitions
    TEST_CASES_DIR = os.getenv('TEST_CASES_DIR', str(PROJECT_ROOT / 'test_cases'))

    # Directory the upload service writes its CSV output into
    CSV_OUTPUT_DIR = os.getenv('CSV_OUTPUT_DIR', '/path/to/csv/output')

    # SOAP call
    REQUEST_TIMEOUT = float(os.getenv('REQUEST_TIMEOUT', 30))  # seconds

    # Output polling
    POLL_INITIAL_DELAY = float(os.getenv('POLL_INITIAL_DELAY', 2.0))  # seconds
    POLL_TIMEOUT = float(os.getenv('POLL_TIMEOUT', 30))  # seconds
    POLL_INTERVAL = float(os.getenv('POLL_INTERVAL', 0.5))  # seconds
    POLL_MAX_INTERVAL = float(os.getenv('POLL_MAX_INTERVAL', 5))  # seconds

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    @classmethod
    def output_configured(cls):
        """Check if the CSV output directory exists on this machine"""
        return os.path.isdir(cls.CSV_OUTPUT_DIR)


def configure_logging(level: str = None):
    """Configure root logging once for the harness"""
    logging.basicConfig(
        level=(level or Config.LOG_LEVEL).upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

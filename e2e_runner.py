"""
E2E Runner
Drives one test case through build -> request -> wait -> compare
"""
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import csv_comparator
from case_loader import TestCase
from exceptions import HarnessError, StageError, TransportError
from output_poller import OutputPoller, request_timestamp
from soap_client import SOAPClient, extract_fault, is_success
from yaml_soap_mapper import yaml_to_soap_xml

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Pipeline states of a single test case"""
    LOADED = 'loaded'
    XML_BUILT = 'xml_built'
    REQUESTED = 'requested'
    RESPONSE_OK = 'response_ok'
    OUTPUT_DETECTED = 'output_detected'
    COMPARED = 'compared'
    PASSED = 'passed'
    FAILED = 'failed'


@dataclass
class RunResult:
    """What happened to one test case"""
    test_case: TestCase
    stage: Stage = Stage.LOADED
    request_xml: Optional[str] = None
    status_code: Optional[int] = None
    output_file: Optional[Path] = None
    error: Optional[StageError] = None

    @property
    def passed(self) -> bool:
        return self.stage is Stage.PASSED


class E2ERunner:
    """Runs test cases fail-fast, one stage after the other"""

    def __init__(self, client: SOAPClient = None, poller: OutputPoller = None):
        self.client = client or SOAPClient()
        self.poller = poller or OutputPoller()

    def run(self, test_case: TestCase) -> RunResult:
        """
        Run a test case and record where it stopped

        The first failing stage ends the run; result.error holds a
        StageError naming the stage that was being attempted.
        """
        result = RunResult(test_case=test_case)
        logger.info(f"Running test case {test_case.name} against {test_case.endpoint}")

        attempting = Stage.XML_BUILT
        try:
            result.request_xml = yaml_to_soap_xml(test_case.request_payload, operation=test_case.soap_method)
            self._advance(result, Stage.XML_BUILT)

            attempting = Stage.REQUESTED
            sent_at = request_timestamp()
            response = self.client.call(test_case.endpoint, test_case.soap_action, result.request_xml)
            result.status_code = response.status_code
            self._advance(result, Stage.REQUESTED)

            attempting = Stage.RESPONSE_OK
            if not is_success(response):
                fault = extract_fault(response.text)
                detail = f": {fault}" if fault else ""
                raise TransportError(
                    f"SOAP response was not successful (HTTP {response.status_code}){detail}",
                    status_code=response.status_code,
                    body=response.text
                )
            self._advance(result, Stage.RESPONSE_OK)

            attempting = Stage.OUTPUT_DETECTED
            result.output_file = self.poller.await_output(newer_than=sent_at)
            self._advance(result, Stage.OUTPUT_DETECTED)

            attempting = Stage.COMPARED
            csv_comparator.assert_equal(test_case.expected_csv_text(), result.output_file)
            self._advance(result, Stage.COMPARED)

        except HarnessError as e:
            result.error = StageError(attempting, e)
            result.stage = Stage.FAILED
            logger.error(f"Test case {test_case.name} failed: {result.error}")
            return result

        self._advance(result, Stage.PASSED)
        return result

    def run_or_raise(self, test_case: TestCase) -> RunResult:
        """
        Run a test case

        Raises:
            StageError: If any stage fails
        """
        result = self.run(test_case)
        if result.error is not None:
            raise result.error
        return result

    def _advance(self, result: RunResult, stage: Stage):
        logger.info(f"{result.test_case.name}: {result.stage.value} -> {stage.value}")
        result.stage = stage

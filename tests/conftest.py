"""
Shared fixtures and helpers for the upload harness tests
"""
import pytest
import sys
import os
import textwrap

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import configure_logging

configure_logging()

SOAP_ACTION = "http://ipggz.MDM.org/UploadExtendedLocalMasterData"
ENDPOINT = "http://mdm.example.test/MDMService.asmx"


@pytest.fixture
def client_payload():
    """Two client records, wrapped in a redundant localDataList key"""
    return textwrap.dedent("""\
        localDataList:
          - LocalCode: "00042"
            LocalName: Acme Widgets Ltd
            Active: true
          - LocalCode: "00043"
            LocalName: Globex Corporation
            Active: false
        """)


@pytest.fixture
def expected_csv():
    return "LocalCode,LocalName,Active\n00042,Acme Widgets Ltd,true\n00043,Globex Corporation,false\n"


@pytest.fixture
def write_test_case(tmp_path):
    """Write a test definition file and return its path"""
    def _write(name, content):
        path = tmp_path / f"{name}.yaml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path
    return _write


class FakeResponse:
    """Minimal stand-in for requests.Response"""

    def __init__(self, status_code=200, text=""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    """Records posts; optionally raises or runs a side effect (e.g. writing output)"""

    def __init__(self, response=None, error=None, on_post=None):
        self.response = response or FakeResponse()
        self.error = error
        self.on_post = on_post
        self.calls = []
        self.closed = False

    def post(self, url, data=None, headers=None, timeout=None):
        self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        if self.error is not None:
            raise self.error
        if self.on_post is not None:
            self.on_post()
        return self.response

    def close(self):
        self.closed = True


def soap_fault(faultstring):
    """SOAP 1.1 fault body"""
    return f'''<?xml version="1.0" encoding="utf-8"?>
<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">
  <soap:Body>
    <soap:Fault>
      <faultcode>soap:Server</faultcode>
      <faultstring>{faultstring}</faultstring>
    </soap:Fault>
  </soap:Body>
</soap:Envelope>'''


def element_tree_names(element):
    """Nested (tag, children) structure of an element, for structure comparisons"""
    return [(child.tag, element_tree_names(child)) for child in element]


def mapping_tree_names(value):
    """Same structure as element_tree_names, derived from a nested mapping"""
    if isinstance(value, dict):
        return [(str(key), mapping_tree_names(child)) for key, child in value.items()]
    return []

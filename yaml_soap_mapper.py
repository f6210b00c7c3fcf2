"""
YAML to SOAP Mapper
Builds the UploadExtendedLocalMasterData SOAP request from a YAML payload
"""
import re
import logging
from collections.abc import Mapping
from datetime import date
from enum import Enum
from typing import Any, Optional

import yaml
from lxml import etree

from exceptions import ConversionError

logger = logging.getLogger(__name__)

SOAP_ENV_NS = 'http://schemas.xmlsoap.org/soap/envelope/'
MDM_NS = 'http://ipggz.MDM.org/'

UPLOAD_OPERATION = 'UploadExtendedLocalMasterData'
LOCAL_DATA_LIST = 'localDataList'
LIST_ITEM_ELEMENT = 'ExtendedLocalDataVO'

# XML NCName, no prefixes
_ELEMENT_NAME = re.compile(r'^[^\W\d][\w.\-]*$', re.UNICODE)

_SCALAR_TYPES = (str, int, float, bool, date)


class NodeKind(Enum):
    """Shape of a YAML value tree node"""
    MAPPING = 'mapping'
    SEQUENCE = 'sequence'
    SCALAR = 'scalar'


class PayloadLoader(yaml.BaseLoader):
    """YAML loader that keeps scalar text verbatim; only null is resolved"""


PayloadLoader.add_implicit_resolver(
    'tag:yaml.org,2002:null',
    re.compile(r'^(?:~|null|Null|NULL|)$'),
    ['~', 'n', 'N', '']
)
PayloadLoader.add_constructor('tag:yaml.org,2002:null', lambda loader, node: None)


def load_payload(yaml_text: str) -> Any:
    """
    Parse a request payload

    Scalars keep their source text ("007" stays "007", "1.50" stays "1.50")
    so the request carries exactly what the test author wrote.

    Raises:
        ConversionError: If the payload is not valid YAML
    """
    try:
        return yaml.load(yaml_text, Loader=PayloadLoader)
    except yaml.YAMLError as e:
        raise ConversionError(f"Request payload is not valid YAML: {e}") from e


def classify(value: Any) -> NodeKind:
    """
    Classify a YAML value tree node

    Raises:
        ConversionError: If the node is none of mapping, sequence or scalar
    """
    if isinstance(value, Mapping):
        return NodeKind.MAPPING
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    if value is None or isinstance(value, _SCALAR_TYPES):
        return NodeKind.SCALAR
    raise ConversionError(f"Cannot map YAML node of type {type(value).__name__} to XML")


def _local_name(element) -> str:
    return etree.QName(element).localname


def _element_name(key: Any, path: str) -> str:
    name = str(key)
    if not _ELEMENT_NAME.match(name):
        raise ConversionError(f"Key '{name}' at '{path or '/'}' is not a valid XML element name")
    return name


def convert(value: Any, parent, path: str = '') -> None:
    """
    Map a YAML value tree onto the XML tree under parent

    - mapping: one child element per key, in document order. A
      localDataList key directly under a localDataList element is merged
      into that element instead of nesting a second wrapper.
    - sequence: one ExtendedLocalDataVO child per item, in order
    - scalar: element text (empty for null)

    Args:
        value: Parsed YAML node
        parent: lxml element receiving the mapped content
        path: Key path of parent, used in error messages
    """
    kind = classify(value)

    if kind is NodeKind.MAPPING:
        for key, child_value in value.items():
            if str(key) == LOCAL_DATA_LIST and _local_name(parent) == LOCAL_DATA_LIST:
                convert(child_value, parent, f"{path}/{key}")
                continue

            child = etree.SubElement(parent, _element_name(key, path))
            convert(child_value, child, f"{path}/{key}")

    elif kind is NodeKind.SEQUENCE:
        for index, item in enumerate(value):
            item_element = etree.SubElement(parent, LIST_ITEM_ELEMENT)
            convert(item, item_element, f"{path}[{index}]")

    else:
        try:
            parent.text = '' if value is None else str(value)
        except ValueError as e:
            # lxml rejects control characters and other non-XML text
            raise ConversionError(f"Value at '{path or '/'}' cannot be written as XML text: {e}") from e


def build_envelope(payload: Any, operation: str = UPLOAD_OPERATION):
    """
    Build the SOAP 1.1 request envelope for a parsed payload

    Args:
        payload: Parsed YAML value tree
        operation: Operation element name (in the MDM namespace)

    Returns:
        Envelope root element

    Raises:
        ConversionError: If operation is not a valid XML element name
    """
    if not _ELEMENT_NAME.match(operation):
        raise ConversionError(f"SOAP operation '{operation}' is not a valid XML element name")

    envelope = etree.Element(f"{{{SOAP_ENV_NS}}}Envelope", nsmap={'soap': SOAP_ENV_NS})
    body = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")

    # localDataList stays unqualified, the same as the service's generated proxies
    upload_element = etree.SubElement(body, f"{{{MDM_NS}}}{operation}", nsmap={'mdm': MDM_NS})
    local_data_list = etree.SubElement(upload_element, LOCAL_DATA_LIST)

    convert(payload, local_data_list)
    return envelope


def yaml_to_soap_xml(yaml_text: str, operation: Optional[str] = None) -> str:
    """
    Convert a YAML request payload into the serialized SOAP request body

    Args:
        yaml_text: Raw YAML payload
        operation: Operation element name override

    Returns:
        SOAP envelope as text, with XML declaration
    """
    payload = load_payload(yaml_text)
    envelope = build_envelope(payload, operation or UPLOAD_OPERATION)

    xml_text = etree.tostring(envelope, xml_declaration=True, encoding='utf-8').decode('utf-8')
    logger.debug(f"SOAP request body: {xml_text}")
    return xml_text

"""
SOAP Client
Posts raw SOAP envelopes to the upload service
"""
import logging
from typing import Optional

import requests
from lxml import etree

from config import Config
from exceptions import TransportError

logger = logging.getLogger(__name__)

CONTENT_TYPE = 'text/xml; charset=utf-8'


class SOAPClient:
    """Single-attempt SOAP 1.1 client over requests"""

    def __init__(self, timeout: float = None, session: Optional[requests.Session] = None):
        """
        Args:
            timeout: Request timeout in seconds (defaults to Config.REQUEST_TIMEOUT)
            session: requests session to reuse (a new one is created otherwise)
        """
        self.timeout = timeout if timeout is not None else Config.REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def call(self, endpoint: str, soap_action: str, xml_body: str) -> requests.Response:
        """
        POST a SOAP envelope

        The response is returned as-is; SOAP faults are not interpreted here.

        Args:
            endpoint: Service URL
            soap_action: Value for the SOAPAction header
            xml_body: Serialized SOAP envelope

        Returns:
            requests Response

        Raises:
            TransportError: If the request fails on the network or times out
        """
        headers = {
            'SOAPAction': soap_action,
            'Content-Type': CONTENT_TYPE
        }

        logger.info(f"POST {endpoint} (SOAPAction: {soap_action})")

        try:
            response = self.session.post(
                endpoint,
                data=xml_body.encode('utf-8'),
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"SOAP call to {endpoint} failed: {e}")
            raise TransportError(f"SOAP call to {endpoint} failed: {e}") from e

        logger.debug(f"SOAP response {response.status_code}: {response.text}")
        return response

    def close(self):
        self.session.close()


def is_success(response: requests.Response) -> bool:
    """Check for an HTTP 2xx status"""
    return 200 <= response.status_code < 300


def extract_fault(xml_text: str) -> Optional[str]:
    """
    Pull the faultstring out of a SOAP 1.1 fault body

    Used for failure messages only.

    Returns:
        Fault string, or None if the body is not a SOAP fault
    """
    if not xml_text:
        return None

    try:
        root = etree.fromstring(xml_text.encode('utf-8') if isinstance(xml_text, str) else xml_text)
    except etree.XMLSyntaxError:
        return None

    fault = root.find('.//{http://schemas.xmlsoap.org/soap/envelope/}Fault')
    if fault is None:
        return None

    # faultstring is unqualified in SOAP 1.1
    faultstring = fault.findtext('faultstring')
    return faultstring.strip() if faultstring else ''

"""WS-Trust security token requests with a user name and password.

Both the ADFS strategy and SharePoint Online credential sign-in exchange a
:class:`~spconnect.models.CredentialPair` for a SAML security token by
POSTing a SOAP 1.2 ``RequestSecurityToken`` envelope:

- SharePoint Online's ``extSTS.srf`` speaks WS-Trust February 2005 and
  answers with a compact ``BinarySecurityToken``.
- ADFS ``/adfs/services/trust/13/usernamemixed`` speaks WS-Trust 1.3 and
  answers with a ``RequestSecurityTokenResponse`` that is posted back to
  the relying party unchanged.

The response is parsed with :mod:`xml.etree.ElementTree` to detect SOAP
faults. The token response is sliced out of the raw text rather than
re-serialised, because re-serialising renames namespace prefixes and breaks
the assertion's signature.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from typing import NamedTuple
from xml.sax.saxutils import escape

import httpx

from spconnect.exceptions import AuthenticationError
from spconnect.models import CredentialPair
from spconnect.strategies.common import TOKEN_REQUEST_TIMEOUT

logger = logging.getLogger(__name__)

SOAP_NS = "http://www.w3.org/2003/05/soap-envelope"
WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"


class TrustVersion(NamedTuple):
    """The namespace and URIs that differ between WS-Trust versions."""

    namespace: str
    action: str
    request_type: str
    key_type: str


WSTRUST_2005 = TrustVersion(
    namespace="http://schemas.xmlsoap.org/ws/2005/02/trust",
    action="http://schemas.xmlsoap.org/ws/2005/02/trust/RST/Issue",
    request_type="http://schemas.xmlsoap.org/ws/2005/02/trust/Issue",
    key_type="http://schemas.xmlsoap.org/ws/2005/05/identity/NoProofKey",
)

WSTRUST_13 = TrustVersion(
    namespace="http://docs.oasis-open.org/ws-sx/ws-trust/200512",
    action="http://docs.oasis-open.org/ws-sx/ws-trust/200512/RST/Issue",
    request_type="http://docs.oasis-open.org/ws-sx/ws-trust/200512/Issue",
    key_type="http://docs.oasis-open.org/ws-sx/ws-trust/200512/Bearer",
)

_ENVELOPE = """\
<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope" \
xmlns:a="http://www.w3.org/2005/08/addressing" \
xmlns:u="http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd">
  <s:Header>
    <a:Action s:mustUnderstand="1">{action}</a:Action>
    <a:ReplyTo><a:Address>http://www.w3.org/2005/08/addressing/anonymous</a:Address></a:ReplyTo>
    <a:To s:mustUnderstand="1">{endpoint}</a:To>
    <o:Security s:mustUnderstand="1" xmlns:o="{wsse}">
      <o:UsernameToken>
        <o:Username>{username}</o:Username>
        <o:Password>{password}</o:Password>
      </o:UsernameToken>
    </o:Security>
  </s:Header>
  <s:Body>
    <t:RequestSecurityToken xmlns:t="{trust}">
      <wsp:AppliesTo xmlns:wsp="http://schemas.xmlsoap.org/ws/2004/09/policy">
        <a:EndpointReference><a:Address>{applies_to}</a:Address></a:EndpointReference>
      </wsp:AppliesTo>
      <t:KeyType>{key_type}</t:KeyType>
      <t:RequestType>{request_type}</t:RequestType>
      <t:TokenType>urn:oasis:names:tc:SAML:1.0:assertion</t:TokenType>
    </t:RequestSecurityToken>
  </s:Body>
</s:Envelope>"""

_TOKEN_RESPONSE = re.compile(
    r"<(?:(\w+):)?RequestSecurityTokenResponse\b.*?</(?:\1:)?RequestSecurityTokenResponse>",
    re.DOTALL,
)


def build_envelope(
    endpoint: str,
    applies_to: str,
    pair: CredentialPair,
    version: TrustVersion,
) -> str:
    """Return the SOAP ``RequestSecurityToken`` envelope for *pair*."""
    return _ENVELOPE.format(
        action=version.action,
        endpoint=escape(endpoint),
        wsse=WSSE_NS,
        username=escape(pair.username),
        password=escape(pair.password.get_secret_value()),
        trust=version.namespace,
        applies_to=escape(applies_to),
        key_type=version.key_type,
        request_type=version.request_type,
    )


def _check_fault(root: ET.Element) -> None:
    fault = root.find(f"{{{SOAP_NS}}}Body/{{{SOAP_NS}}}Fault")
    if fault is None:
        return
    reason = fault.find(f".//{{{SOAP_NS}}}Text")
    detail = reason.text.strip() if reason is not None and reason.text else "unknown fault"
    raise AuthenticationError(f"The security token service rejected the sign-in: {detail}")


def request_security_token(
    endpoint: str,
    applies_to: str,
    pair: CredentialPair,
    version: TrustVersion,
) -> str:
    """POST a token request to *endpoint* and return the raw response text.

    Raises:
        AuthenticationError: On HTTP errors, unparseable responses or a
            SOAP fault.
    """
    logger.debug("Requesting a security token from %s for %s", endpoint, applies_to)
    envelope = build_envelope(endpoint, applies_to, pair, version)
    try:
        response = httpx.post(
            endpoint,
            content=envelope.encode("utf-8"),
            headers={"Content-Type": "application/soap+xml; charset=utf-8"},
            timeout=TOKEN_REQUEST_TIMEOUT,
        )
    except httpx.HTTPError as exc:
        raise AuthenticationError(f"Security token request failed: {exc}") from exc

    try:
        root = ET.fromstring(response.text)
    except ET.ParseError as exc:
        raise AuthenticationError(
            f"Security token request failed with status {response.status_code}: "
            "the response is not XML"
        ) from exc

    _check_fault(root)
    if response.is_error:
        raise AuthenticationError(
            f"Security token request failed with status {response.status_code}"
        )
    return response.text


def extract_binary_token(text: str) -> str:
    """Return the ``BinarySecurityToken`` value from a token response.

    Raises:
        AuthenticationError: If the response holds no token.
    """
    root = ET.fromstring(text)
    token = root.find(f".//{{{WSSE_NS}}}BinarySecurityToken")
    if token is None or not token.text:
        raise AuthenticationError("Security token response missing 'BinarySecurityToken'")
    return token.text.strip()


def extract_token_response(text: str) -> str:
    """Return the raw ``RequestSecurityTokenResponse`` element from a token response.

    Raises:
        AuthenticationError: If the response holds no token response.
    """
    match = _TOKEN_RESPONSE.search(text)
    if match is None:
        raise AuthenticationError(
            "Security token response missing 'RequestSecurityTokenResponse'"
        )
    return match.group(0)

"""Azure AD app-only strategy authenticated with a client certificate.

The PKCS#12 file is loaded with :mod:`cryptography`. Its private key signs
a short-lived RS256 client assertion (:mod:`jwt`) whose ``x5t`` header is
the certificate's SHA-1 thumbprint, and the assertion is exchanged at the
tenant's token endpoint with the client credentials grant.
"""

from __future__ import annotations

import base64
import time
import uuid
from pathlib import Path
from typing import Any

import jwt
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import pkcs12

from spconnect.auth.base import ClientContext, ConnectionStrategy
from spconnect.exceptions import CertificateError
from spconnect.models import AppOnlyAadRequest, ConnectionRequest, StrategyKind
from spconnect.strategies.common import post_token_request, token_expiry
from spconnect.strategies.native_aad.strategy import resource_for

TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/token"
ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
ASSERTION_LIFETIME = 600


def load_certificate(path: Path, password: str) -> tuple[Any, Any]:
    """Load the private key and certificate from a PKCS#12 file.

    Raises:
        CertificateError: If the file cannot be read, the password is wrong,
            or the file lacks a key or certificate.
    """
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        raise CertificateError(f"Cannot read certificate file {path}: {exc}") from exc

    try:
        key, certificate, _ = pkcs12.load_key_and_certificates(
            data, password.encode("utf-8") if password else None
        )
    except ValueError as exc:
        raise CertificateError(
            f"Cannot open certificate file {path}: wrong password or not a PKCS#12 file"
        ) from exc

    if key is None or certificate is None:
        raise CertificateError(f"Certificate file {path} must contain a private key and a certificate")
    return key, certificate


def thumbprint(certificate: Any) -> str:
    """Return the base64url SHA-1 thumbprint used as the ``x5t`` header."""
    digest = certificate.fingerprint(hashes.SHA1())
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def build_client_assertion(client_id: str, token_url: str, key: Any, certificate: Any) -> str:
    """Return a signed RS256 client assertion for *client_id*."""
    now = int(time.time())
    claims = {
        "aud": token_url,
        "iss": client_id,
        "sub": client_id,
        "jti": str(uuid.uuid4()),
        "nbf": now,
        "exp": now + ASSERTION_LIFETIME,
    }
    return jwt.encode(claims, key, algorithm="RS256", headers={"x5t": thumbprint(certificate)})


class AppOnlyAadStrategy(ConnectionStrategy):
    """Authenticate as an Azure AD application holding a certificate."""

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.APP_ONLY_AAD

    def connect(self, request: ConnectionRequest) -> ClientContext:
        strategy = request.strategy
        assert isinstance(strategy, AppOnlyAadRequest)

        key, certificate = load_certificate(
            strategy.certificate_path, strategy.certificate_password.get_secret_value()
        )
        token_url = TOKEN_URL.format(tenant=strategy.tenant)
        data = {
            "grant_type": "client_credentials",
            "client_id": strategy.client_id,
            "client_assertion_type": ASSERTION_TYPE,
            "client_assertion": build_client_assertion(
                strategy.client_id, token_url, key, certificate
            ),
            "resource": resource_for(request.url),
        }
        token_data = post_token_request(token_url, data, "App-only token request")
        return ClientContext(
            request.url,
            auth_mode=self.kind.value,
            headers={"Authorization": f"Bearer {token_data['access_token']}"},
            expires_at=token_expiry(token_data),
        )

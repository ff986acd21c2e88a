"""Tests for the Negotiate/NTLM httpx auth."""

from __future__ import annotations

import base64
from typing import Optional
from unittest.mock import patch

import httpx
import pytest
from spnego.exceptions import NoCredentialError

from spconnect.auth.negotiate import NegotiateAuth, offered_scheme
from spconnect.exceptions import AuthenticationError

SITE = "http://intranet.contoso.local/sites/hr"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class FakeSecurityContext:
    """Hands out scripted tokens and records what the server sent back."""

    def __init__(self, tokens: list[bytes]) -> None:
        self._tokens = list(tokens)
        self.received: list[Optional[bytes]] = []
        self.complete = False

    def step(self, in_token: Optional[bytes] = None) -> Optional[bytes]:
        self.received.append(in_token)
        token = self._tokens.pop(0)
        self.complete = not self._tokens
        return token


def _ntlm_server(seen: list[Optional[str]]):
    def handler(request: httpx.Request) -> httpx.Response:
        header = request.headers.get("Authorization")
        seen.append(header)
        if header is None:
            return httpx.Response(401, headers=[("WWW-Authenticate", "NTLM"), ("WWW-Authenticate", "Basic")])
        if header == f"NTLM {_b64(b'negotiate')}":
            return httpx.Response(401, headers={"WWW-Authenticate": f"NTLM {_b64(b'challenge')}"})
        if header == f"NTLM {_b64(b'authenticate')}":
            return httpx.Response(200, text="ok")
        return httpx.Response(403)

    return handler


class TestOfferedScheme:
    def test_prefers_negotiate(self) -> None:
        response = httpx.Response(401, headers=[("WWW-Authenticate", "NTLM"), ("WWW-Authenticate", "Negotiate")])
        assert offered_scheme(response) == "negotiate"

    def test_basic_only(self) -> None:
        assert offered_scheme(httpx.Response(401, headers={"WWW-Authenticate": 'Basic realm="x"'})) is None

    def test_not_a_challenge(self) -> None:
        assert offered_scheme(httpx.Response(200)) is None


class TestHandshake:
    def test_ntlm_three_legs_with_credentials(self) -> None:
        seen: list[Optional[str]] = []
        security_context = FakeSecurityContext([b"negotiate", b"authenticate"])

        with patch("spnego.client", return_value=security_context) as client_factory:
            with httpx.Client(transport=httpx.MockTransport(_ntlm_server(seen))) as client:
                response = client.get(SITE, auth=NegotiateAuth("CONTOSO\\alice", "pw"))

        assert response.status_code == 200
        assert seen == [None, f"NTLM {_b64(b'negotiate')}", f"NTLM {_b64(b'authenticate')}"]
        assert security_context.received == [None, b"challenge"]
        client_factory.assert_called_once_with(
            "CONTOSO\\alice",
            "pw",
            hostname="intranet.contoso.local",
            service="HTTP",
            protocol="ntlm",
        )

    def test_current_identity_passes_no_credentials(self) -> None:
        security_context = FakeSecurityContext([b"negotiate", b"authenticate"])

        with patch("spnego.client", return_value=security_context) as client_factory:
            with httpx.Client(transport=httpx.MockTransport(_ntlm_server([]))) as client:
                response = client.get(SITE, auth=NegotiateAuth())

        assert response.status_code == 200
        assert client_factory.call_args.args == (None, None)

    def test_unchallenged_request_is_sent_once(self) -> None:
        seen: list[Optional[str]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.headers.get("Authorization"))
            return httpx.Response(200)

        with patch("spnego.client") as client_factory:
            with httpx.Client(transport=httpx.MockTransport(handler)) as client:
                client.get(SITE, auth=NegotiateAuth())

        assert seen == [None]
        client_factory.assert_not_called()

    def test_basic_challenge_is_left_alone(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, headers={"WWW-Authenticate": 'Basic realm="x"'})

        with patch("spnego.client") as client_factory:
            with httpx.Client(transport=httpx.MockTransport(handler)) as client:
                response = client.get(SITE, auth=NegotiateAuth("u", "p"))

        assert response.status_code == 401
        client_factory.assert_not_called()

    def test_library_failure_becomes_authentication_error(self) -> None:
        with patch("spnego.client", side_effect=NoCredentialError(context_msg="no ticket")):
            with httpx.Client(transport=httpx.MockTransport(_ntlm_server([]))) as client:
                with pytest.raises(AuthenticationError, match="Integrated sign-in failed"):
                    client.get(SITE, auth=NegotiateAuth())


def test_repr_hides_password() -> None:
    assert "pw" not in repr(NegotiateAuth("alice", "pw"))
    assert repr(NegotiateAuth()) == "NegotiateAuth(current identity)"

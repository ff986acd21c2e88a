"""Tests for connections and the current-connection registry."""

from __future__ import annotations

import threading

import httpx
import pytest

from conftest import ScriptedHost
from spconnect.auth.base import ClientContext
from spconnect.auth.factory import ConnectionFactory
from spconnect.connection import (
    Connection,
    ConnectionRegistry,
    ConnectionType,
    connect,
    detect_connection_type,
    get_current_connection,
)
from spconnect.exceptions import CancelledError
from spconnect.models import ConnectionRequest, ResiliencyOptions, WebLoginRequest
from spconnect.strategies.web_login import WebLoginStrategy


@pytest.mark.parametrize(
    ("url", "skip", "expected"),
    [
        ("https://contoso.sharepoint.com/sites/a", False, ConnectionType.O365),
        ("https://contoso-admin.sharepoint.com", False, ConnectionType.TENANT_ADMIN),
        ("https://contoso-admin.sharepoint.com", True, ConnectionType.O365),
        ("https://CONTOSO-ADMIN.SharePoint.com", False, ConnectionType.TENANT_ADMIN),
        ("http://intranet.contoso.local", False, ConnectionType.ONPREM),
        ("https://sharepoint.com.evil.example", False, ConnectionType.ONPREM),
    ],
)
def test_detect_connection_type(url: str, skip: bool, expected: ConnectionType) -> None:
    assert detect_connection_type(url, skip) is expected


def _factory(browser_result: object = "fed") -> ConnectionFactory:
    factory = ConnectionFactory()
    factory.register(WebLoginStrategy(ScriptedHost(browser_result=browser_result)))
    return factory


def _request(url: str = "https://contoso.sharepoint.com") -> ConnectionRequest:
    return ConnectionRequest(url=url, strategy=WebLoginRequest())


class TestConnect:
    def test_success_becomes_current(self) -> None:
        connection = connect(_request(), factory=_factory())
        assert get_current_connection() is connection
        assert connection.url == "https://contoso.sharepoint.com"

    def test_second_connect_replaces_first(self) -> None:
        first = connect(_request(), factory=_factory("one"))
        second = connect(_request("https://fabrikam.sharepoint.com"), factory=_factory("two"))

        assert get_current_connection() is second
        assert second is not first
        assert second.context.cookies == {"FedAuth": "two"}

    def test_failure_keeps_previous_connection(self) -> None:
        first = connect(_request(), factory=_factory())
        with pytest.raises(CancelledError):
            connect(
                _request("https://fabrikam.sharepoint.com"),
                factory=_factory(CancelledError("closed")),
            )
        assert get_current_connection() is first

    def test_failure_with_nothing_current(self) -> None:
        with pytest.raises(CancelledError):
            connect(_request(), factory=_factory(CancelledError("closed")))
        assert get_current_connection() is None

    def test_explicit_registry(self) -> None:
        registry = ConnectionRegistry()
        connection = connect(_request(), factory=_factory(), registry=registry)

        assert registry.get() is connection
        assert get_current_connection() is None


class TestConnectionRegistry:
    def test_empty_until_set(self) -> None:
        assert ConnectionRegistry().get() is None

    def test_concurrent_sets_leave_one_connection(self) -> None:
        registry = ConnectionRegistry()
        connections = [
            Connection(ClientContext(f"https://s{i}.sharepoint.com", auth_mode="web_login"), ResiliencyOptions())
            for i in range(20)
        ]
        threads = [threading.Thread(target=registry.set, args=(c,)) for c in connections]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert registry.get() in connections

    def test_clear(self) -> None:
        registry = ConnectionRegistry()
        registry.set(Connection(ClientContext("https://a.sharepoint.com", auth_mode="x"), ResiliencyOptions()))
        registry.clear()
        assert registry.get() is None


class TestCreateClient:
    def test_client_carries_auth_material(self) -> None:
        context = ClientContext(
            "https://contoso.sharepoint.com/sites/team",
            auth_mode="token",
            headers={"Authorization": "Bearer t"},
            cookies={"FedAuth": "f"},
        )
        connection = Connection(context, ResiliencyOptions(request_timeout=5000))

        with connection.create_client() as client:
            assert str(client.base_url) == "https://contoso.sharepoint.com/sites/team/"
            assert client.headers["Authorization"] == "Bearer t"
            assert client.cookies["FedAuth"] == "f"
            assert client.timeout.read == 5.0

    def test_basic_auth(self) -> None:
        context = ClientContext(
            "http://intranet", auth_mode="default", auth=httpx.BasicAuth("u", "p")
        )
        with Connection(context, ResiliencyOptions()).create_client() as client:
            assert isinstance(client.auth, httpx.BasicAuth)

    def test_repr_has_no_secrets(self) -> None:
        context = ClientContext(
            "https://contoso.sharepoint.com", auth_mode="token", headers={"Authorization": "Bearer secret"}
        )
        connection = Connection(context, ResiliencyOptions(), connection_type=ConnectionType.O365)
        assert "secret" not in repr(connection)
        assert "o365" in repr(connection)

"""Tests for strategy selection and request building."""

from __future__ import annotations

from pathlib import Path

import pytest

from spconnect.auth.selector import build_request, select_kind, select_strategy
from spconnect.exceptions import ConfigurationError
from spconnect.models import (
    AdfsRequest,
    AppOnlyAadRequest,
    ConnectionParameters,
    CredentialPair,
    DefaultRequest,
    GlobalConfig,
    NativeAadRequest,
    ResiliencyOptions,
    StrategyKind,
    TokenRequest,
    WebLoginRequest,
)

URL = "https://contoso.sharepoint.com/sites/team"


def _params(**kwargs: object) -> ConnectionParameters:
    return ConnectionParameters(url=URL, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# One group -> one strategy
# ---------------------------------------------------------------------------


class TestSelectStrategy:
    def test_no_parameters_selects_default(self) -> None:
        strategy = select_strategy(_params())
        assert isinstance(strategy, DefaultRequest)
        assert strategy.credentials is None
        assert strategy.current_credentials is False

    def test_token(self) -> None:
        strategy = select_strategy(_params(realm="r1", app_id="app", app_secret="sec"))
        assert isinstance(strategy, TokenRequest)
        assert strategy.realm == "r1"
        assert strategy.app_secret.get_secret_value() == "sec"

    def test_token_realm_is_optional(self) -> None:
        strategy = select_strategy(_params(app_id="app", app_secret="sec"))
        assert isinstance(strategy, TokenRequest)
        assert strategy.realm is None

    def test_web_login(self) -> None:
        assert isinstance(select_strategy(_params(use_web_login=True)), WebLoginRequest)

    def test_adfs_with_label(self) -> None:
        strategy = select_strategy(_params(use_adfs=True, credentials="label"))
        assert isinstance(strategy, AdfsRequest)
        assert strategy.credentials == "label"

    def test_native_aad(self) -> None:
        strategy = select_strategy(
            _params(client_id="cid", redirect_uri="http://localhost:8400", clear_token_cache=True)
        )
        assert isinstance(strategy, NativeAadRequest)
        assert strategy.clear_token_cache is True

    def test_app_only_aad(self, tmp_path: Path) -> None:
        strategy = select_strategy(
            _params(
                client_id="cid",
                tenant="contoso.onmicrosoft.com",
                certificate_path=tmp_path / "cert.pfx",
                certificate_password="pw",
            )
        )
        assert isinstance(strategy, AppOnlyAadRequest)
        assert strategy.tenant == "contoso.onmicrosoft.com"

    def test_credentials_alone_selects_default(self, alice: CredentialPair) -> None:
        strategy = select_strategy(_params(credentials=alice))
        assert isinstance(strategy, DefaultRequest)
        assert strategy.credentials == alice

    def test_current_credentials(self) -> None:
        strategy = select_strategy(_params(current_credentials=True))
        assert isinstance(strategy, DefaultRequest)
        assert strategy.current_credentials is True

    def test_empty_string_counts_as_absent(self) -> None:
        assert select_kind(_params(realm="", use_web_login=True)) is StrategyKind.WEB_LOGIN


# ---------------------------------------------------------------------------
# Conflicts and missing parameters
# ---------------------------------------------------------------------------


class TestSelectionErrors:
    def test_two_groups_conflict(self) -> None:
        with pytest.raises(ConfigurationError, match="--use-web-login conflicts with --use-adfs"):
            select_strategy(_params(use_web_login=True, use_adfs=True))

    def test_token_and_native_conflict(self) -> None:
        with pytest.raises(ConfigurationError, match="conflicts with"):
            select_strategy(
                _params(app_id="a", app_secret="s", client_id="c", redirect_uri="http://localhost")
            )

    def test_shared_parameter_rejected_by_group(self) -> None:
        with pytest.raises(ConfigurationError, match="--credentials cannot be combined"):
            select_strategy(_params(use_web_login=True, credentials="label"))

    def test_client_id_alone(self) -> None:
        with pytest.raises(ConfigurationError, match="--client-id requires"):
            select_strategy(_params(client_id="cid"))

    def test_credentials_with_current_credentials(self) -> None:
        with pytest.raises(ConfigurationError, match="--current-credentials"):
            select_strategy(_params(credentials="label", current_credentials=True))

    def test_token_missing_secret(self) -> None:
        with pytest.raises(ConfigurationError, match="--app-secret"):
            select_strategy(_params(realm="r", app_id="app"))

    def test_token_empty_secret_counts_as_missing(self) -> None:
        with pytest.raises(ConfigurationError, match="--app-secret"):
            select_strategy(_params(app_id="app", app_secret=""))

    def test_native_missing_client_id(self) -> None:
        with pytest.raises(ConfigurationError, match="--client-id"):
            select_strategy(_params(redirect_uri="http://localhost"))

    def test_app_only_missing_certificate(self) -> None:
        with pytest.raises(ConfigurationError, match="--certificate-path, --certificate-password"):
            select_strategy(_params(client_id="cid", tenant="t"))


# ---------------------------------------------------------------------------
# build_request
# ---------------------------------------------------------------------------


class TestBuildRequest:
    def test_builds_request_with_config_defaults(self, isolated_config: Path) -> None:
        config = GlobalConfig(resiliency=ResiliencyOptions(retry_count=3))
        request = build_request(_params(use_web_login=True, retry_wait=5), config)

        assert request.url == URL
        assert request.strategy.kind == "web_login"
        assert request.resiliency.retry_count == 3
        assert request.resiliency.retry_wait == 5
        assert request.resiliency.request_timeout == 1800000

    def test_skip_flag_is_carried(self, isolated_config: Path) -> None:
        request = build_request(_params(skip_tenant_admin_check=True), GlobalConfig())
        assert request.skip_tenant_admin_check is True

    @pytest.mark.parametrize(
        "url",
        ["/sites/team", "ftp://contoso.com", "https://", "https://x:99999/", "https://x:abc/"],
    )
    def test_invalid_url(self, url: str, isolated_config: Path) -> None:
        with pytest.raises(ConfigurationError, match="not an absolute"):
            build_request(ConnectionParameters(url=url), GlobalConfig())

    def test_invalid_resiliency_value(self, isolated_config: Path) -> None:
        with pytest.raises(ConfigurationError, match="resiliency"):
            build_request(_params(retry_count=-1), GlobalConfig())

"""Tests for provider configuration models and merging."""

import pytest
from pydantic import ValidationError

from popauth.client.models.errors import ProviderConfigError
from popauth.client.models.provider import (
    DEFAULT_PROVIDER_CONFIG,
    Producer,
    ProviderConfig,
    StaticValue,
    UrlParam,
    merge_provider_config,
    resolve_option,
)


class TestDefaults:
    def test_default_record(self):
        # Act
        config = DEFAULT_PROVIDER_CONFIG

        # Assert
        assert [p.name for p in config.default_url_params] == [
            "response_type",
            "client_id",
            "redirect_uri",
        ]
        assert [p.name for p in config.required_url_params] == [
            "state",
            "scope",
            "code_challenge",
            "code_challenge_method",
        ]
        assert config.optional_url_params == ()
        assert config.code_challenge_method == "S256"
        assert config.response_type == "code"
        assert config.response_params == {
            "code": "code",
            "client_id": "client_id",
            "redirect_uri": "redirect_uri",
        }
        assert config.oauth_type == "2.0"
        assert config.state is None

    def test_default_record_is_immutable(self):
        with pytest.raises(ValidationError):
            DEFAULT_PROVIDER_CONFIG.client_id = "changed"


class TestParsing:
    def test_camel_case_and_snake_case_keys(self):
        # Act
        camel = ProviderConfig.model_validate(
            {"clientId": "a", "authorizationEndpoint": "https://p/auth"}
        )
        snake = ProviderConfig(client_id="a", authorization_endpoint="https://p/auth")

        # Assert
        assert camel.client_id == snake.client_id == "a"
        assert camel.authorization_endpoint == snake.authorization_endpoint

    def test_state_coercion_to_tagged_union(self):
        # Act
        static = ProviderConfig(state="abc")
        produced = ProviderConfig(state=lambda: "generated")

        # Assert
        assert isinstance(static.state, StaticValue)
        assert static.state.kind == "static"
        assert static.state.resolve() == "abc"
        assert isinstance(produced.state, Producer)
        assert produced.state.kind == "producer"
        assert produced.state.resolve() == "generated"

    def test_url_param_strings_use_known_table(self):
        # Act
        config = ProviderConfig(optionalUrlParams=["display", "custom_flag"])

        # Assert
        assert config.optional_url_params == (
            UrlParam(name="display", attribute="display"),
            UrlParam(name="custom_flag", attribute="custom_flag"),
        )

    def test_scope_sequence_becomes_tuple(self):
        # Act
        config = ProviderConfig(scope=["a", "b"])

        # Assert
        assert config.scope == ("a", "b")

    def test_invalid_response_type_rejected(self):
        with pytest.raises(ProviderConfigError):
            merge_provider_config(DEFAULT_PROVIDER_CONFIG, {"responseType": "id_token"})

    def test_resolve_option_passes_plain_values_through(self):
        assert resolve_option("plain") == "plain"
        assert resolve_option(None) is None
        assert resolve_option(StaticValue(value="v")) == "v"


class TestMerge:
    def test_overrides_only_explicit_fields(self):
        # Arrange
        base = merge_provider_config(
            DEFAULT_PROVIDER_CONFIG, {"name": "google", "scope": ["openid"]}
        )

        # Act
        merged = merge_provider_config(base, {"clientId": "client-1"})

        # Assert
        assert merged.name == "google"
        assert merged.scope == ("openid",)
        assert merged.client_id == "client-1"
        assert base.client_id is None

    def test_extra_attributes_are_kept(self):
        # Act
        merged = merge_provider_config(
            DEFAULT_PROVIDER_CONFIG, {"display": "popup", "nonce": lambda: "n"}
        )

        # Assert
        assert merged.value_of("display") == "popup"
        assert merged.value_of("nonce") == "n"
        assert merged.value_of("absent") is None

    def test_none_overrides_return_base(self):
        assert merge_provider_config(DEFAULT_PROVIDER_CONFIG, None) is (
            DEFAULT_PROVIDER_CONFIG
        )

    def test_instances_do_not_share_mutable_defaults(self):
        # Act
        first = merge_provider_config(DEFAULT_PROVIDER_CONFIG, {"name": "a"})
        second = merge_provider_config(DEFAULT_PROVIDER_CONFIG, {"name": "b"})
        first.response_params["extra"] = "x"

        # Assert
        assert "extra" not in DEFAULT_PROVIDER_CONFIG.response_params
        assert "extra" not in second.response_params


class TestEnsureAuthorizable:
    def test_lists_missing_settings(self):
        # Arrange
        config = ProviderConfig(name="github", clientId="c")

        # Act & Assert
        with pytest.raises(ProviderConfigError) as exc_info:
            config.ensure_authorizable()

        message = str(exc_info.value)
        assert "authorization_endpoint" in message
        assert "redirect_uri" in message
        assert "client_id" not in message

    def test_state_key(self):
        assert ProviderConfig(name="github").state_key == "github_state"

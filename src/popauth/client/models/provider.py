"""Provider configuration models for popup OAuth 2.0 flows.

Contains the per-provider settings record, the URL parameter descriptors used
to build authorization requests, and the option value union used for settings
that may be either a fixed string or produced on demand.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from popauth.client.models.errors import ProviderConfigError


class StaticValue(BaseModel):
    """Option value given as a literal string."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["static"] = "static"
    value: str

    def resolve(self) -> str:
        return self.value


class Producer(BaseModel):
    """Option value computed by calling a function at resolution time."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["producer"] = "producer"
    func: Callable[[], Any]

    def resolve(self) -> Any:
        return self.func()


OptionValue = Annotated[Union[StaticValue, Producer], Field(discriminator="kind")]


def as_option(value: Any) -> Any:
    """Coerce a raw string or callable into an option value."""
    if value is None or isinstance(value, (StaticValue, Producer)):
        return value
    if callable(value):
        return Producer(func=value)
    if isinstance(value, str):
        return StaticValue(value=value)
    return value


def resolve_option(value: Any) -> Any:
    """Resolve an option value, invoking producers. Plain values pass through."""
    if isinstance(value, (StaticValue, Producer)):
        return value.resolve()
    return value


class UrlParam(BaseModel):
    """Authorization request parameter.

    ``name`` is the query string key and ``attribute`` the provider config
    attribute its value is read from.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    attribute: str

    @classmethod
    def of(cls, name: str) -> UrlParam:
        """Look up a well-known parameter, or map ``name`` to itself."""
        return KNOWN_URL_PARAMS.get(name) or cls(name=name, attribute=name)


KNOWN_URL_PARAMS: dict[str, UrlParam] = {
    param.name: param
    for param in (
        UrlParam(name="response_type", attribute="response_type"),
        UrlParam(name="client_id", attribute="client_id"),
        UrlParam(name="redirect_uri", attribute="redirect_uri"),
        UrlParam(name="scope", attribute="scope"),
        UrlParam(name="state", attribute="state"),
        UrlParam(name="code_challenge", attribute="code_challenge"),
        UrlParam(name="code_challenge_method", attribute="code_challenge_method"),
        UrlParam(name="display", attribute="display"),
        UrlParam(name="prompt", attribute="prompt"),
        UrlParam(name="access_type", attribute="access_type"),
        UrlParam(name="login_hint", attribute="login_hint"),
        UrlParam(name="nonce", attribute="nonce"),
    )
}

DEFAULT_URL_PARAMS = ("response_type", "client_id", "redirect_uri")
REQUIRED_URL_PARAMS = ("state", "scope", "code_challenge", "code_challenge_method")
DEFAULT_RESPONSE_PARAMS = {
    "code": "code",
    "client_id": "client_id",
    "redirect_uri": "redirect_uri",
}


class ProviderConfig(BaseModel):
    """Settings describing one OAuth 2.0 provider.

    Accepts the camelCase option names used by front-end configuration
    (``clientId``, ``authorizationEndpoint``, ...) as well as the snake_case
    attribute names. Unknown keys are kept as extra attributes so that
    provider specific URL parameters can reference them.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str | None = None
    url: str | None = None  # token exchange endpoint
    client_id: str | None = None
    authorization_endpoint: str | None = None
    redirect_uri: str | None = None
    scope: str | tuple[str, ...] | None = None
    scope_prefix: str | None = None
    scope_delimiter: str | None = "+"
    state: OptionValue | None = None
    default_url_params: tuple[UrlParam, ...] = tuple(
        UrlParam.of(name) for name in DEFAULT_URL_PARAMS
    )
    required_url_params: tuple[UrlParam, ...] = tuple(
        UrlParam.of(name) for name in REQUIRED_URL_PARAMS
    )
    optional_url_params: tuple[UrlParam, ...] = ()
    code_challenge: str | None = None
    code_challenge_method: Literal["S256", "plain"] = "S256"
    response_type: Literal["code", "token"] = "code"
    response_params: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_RESPONSE_PARAMS)
    )
    oauth_type: str = "2.0"
    popup_options: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _coerce_extra_producers(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data

        known = set()
        for field_name, info in cls.model_fields.items():
            known.add(field_name)
            if info.alias:
                known.add(info.alias)

        return {
            key: value if key in known or not callable(value) else as_option(value)
            for key, value in data.items()
        }

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, value: Any) -> Any:
        return as_option(value)

    @field_validator(
        "default_url_params",
        "required_url_params",
        "optional_url_params",
        mode="before",
    )
    @classmethod
    def _coerce_url_params(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str):
            value = [value]
        return tuple(UrlParam.of(item) if isinstance(item, str) else item for item in value)

    @property
    def state_key(self) -> str:
        """Storage key holding this provider's anti-forgery state value."""
        return f"{self.name}_state"

    @property
    def url_params(self) -> tuple[UrlParam, ...]:
        """All URL parameters in serialization order."""
        return (
            self.default_url_params
            + self.required_url_params
            + self.optional_url_params
        )

    def value_of(self, attribute: str) -> Any:
        """Resolve a config attribute, invoking producers.

        Extra options may be given under the camelCase form of the attribute
        (``accessType`` for ``access_type``); that form is used when the
        attribute itself is unset.
        """
        value = getattr(self, attribute, None)
        if value is None and attribute not in type(self).model_fields:
            value = (self.model_extra or {}).get(to_camel(attribute))
        return resolve_option(value)

    def ensure_authorizable(self) -> None:
        """Check the settings an authorization attempt cannot start without.

        Raises:
            ProviderConfigError: If endpoint, client id or redirect URI is unset
        """
        missing = [
            field_name
            for field_name in ("authorization_endpoint", "client_id", "redirect_uri")
            if not getattr(self, field_name)
        ]
        if missing:
            raise ProviderConfigError(
                f"Provider {self.name!r} is missing required settings: "
                f"{', '.join(missing)}"
            )


DEFAULT_PROVIDER_CONFIG = ProviderConfig()


def merge_provider_config(
    base: ProviderConfig,
    overrides: ProviderConfig | Mapping[str, Any] | None,
) -> ProviderConfig:
    """Return a new config with ``overrides`` applied on top of ``base``.

    Only fields explicitly set in ``overrides`` replace base values. Neither
    input is modified.

    Raises:
        ProviderConfigError: If ``overrides`` is not a valid configuration
    """
    if overrides is None:
        return base

    if not isinstance(overrides, ProviderConfig):
        try:
            overrides = ProviderConfig.model_validate(overrides)
        except ValidationError as e:
            raise ProviderConfigError(f"Invalid provider configuration: {e}") from e

    update = {
        field_name: getattr(overrides, field_name)
        for field_name in overrides.model_fields_set
        if field_name in ProviderConfig.model_fields
    }
    update.update(overrides.model_extra or {})
    return base.model_copy(update=update, deep=True)

"""Pydantic models shared across oktadance.

The models fall into three groups:

**Identifiers** -- :data:`SessionToken` and :data:`SessionID` are distinct
``NewType`` wrappers around ``str`` so that a single-use session token is
never passed where a session id is expected (and vice versa).

**Provider payloads** -- :class:`AuthnResponse`, :class:`FactorData`, and
:class:`Session` mirror the JSON documents returned by the identity
provider. Only the fields the client consumes are declared; everything else
is ignored, and every declared field has a default so that a sparse body or
an explicit ``null`` never fails validation.

**Configuration** -- :class:`DanceConfig` holds construction-time options
for :class:`~oktadance.dance.Dance`.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any, NewType, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

SessionToken = NewType("SessionToken", str)
"""Single-use authentication artifact issued on successful authentication."""

SessionID = NewType("SessionID", str)
"""Cookie-carried session identifier (``sid``) returned by authorize."""

DEFAULT_REDIRECT_URI = "https://epithet.io/okta-callback"


class AuthnStatus(str, enum.Enum):
    """Transaction states the client acts on.

    Any other status reported by the provider (``LOCKED_OUT``,
    ``PASSWORD_EXPIRED``, ``MFA_ENROLL``, ...) is treated as a terminal
    failure and surfaced verbatim.
    """

    SUCCESS = "SUCCESS"
    MFA_REQUIRED = "MFA_REQUIRED"
    MFA_CHALLENGE = "MFA_CHALLENGE"


class _ProviderModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # An explicit null means the same as an absent field: use the default.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class FactorData(_ProviderModel):
    """A factor entry from ``_embedded.factors`` of an authn response."""

    id: str = ""
    factor_type: str = ""
    provider: str = ""


class AuthnEmbedded(_ProviderModel):
    factors: list[FactorData] = Field(default_factory=list)


class AuthnResponse(_ProviderModel):
    """Authentication transaction returned by ``/api/v1/authn`` and factor verify.

    ``state_token`` correlates the steps of a multi-factor exchange and is
    rotated by the provider on every response. ``session_token`` is only
    present once ``status`` is ``SUCCESS``.
    """

    status: str = ""
    state_token: str = ""
    session_token: str = ""
    expires_at: Optional[str] = None
    factor_result: Optional[str] = None
    embedded: AuthnEmbedded = Field(default_factory=AuthnEmbedded, alias="_embedded")


class SessionIdp(_ProviderModel):
    id: str = ""
    type: str = ""


class Session(_ProviderModel):
    """Read-only snapshot of a provider-held session.

    Returned by :meth:`~oktadance.sessions.SessionDirectory.session`. The
    model is frozen; fetch it again to observe changes.

    See the provider's session model documentation for the meaning of each
    field. Timestamps are parsed to timezone-aware :class:`datetime` values.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    id: str = ""
    user_id: str = ""
    login: str = ""
    created_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    status: str = ""
    last_password_verification: Optional[datetime] = None
    last_factor_verification: Optional[datetime] = None
    amr: list[str] = Field(default_factory=list)
    idp: SessionIdp = Field(default_factory=SessionIdp)
    mfa_active: bool = False


class DanceConfig(BaseModel):
    """Construction-time options for :class:`~oktadance.dance.Dance`.

    Example::

        DanceConfig(domain="example.okta.com", client_id="0oa1b2c3")
    """

    domain: str = Field(description="Identity provider domain, e.g. example.okta.com")
    client_id: Optional[str] = Field(
        default=None, description="OAuth client id; required only by authorize"
    )
    redirect_uri: str = Field(
        default=DEFAULT_REDIRECT_URI, description="Redirect URI sent to authorize"
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    pretty_json: bool = Field(
        default=False, description="Indent JSON bodies in diagnostic dumps"
    )
    max_poll_wait: Optional[float] = Field(
        default=None,
        gt=0,
        description="Cap in seconds on a factor challenge loop; unbounded when unset",
    )

    @field_validator("domain")
    @classmethod
    def _normalise_domain(cls, value: str) -> str:
        domain = value.strip()
        for prefix in ("https://", "http://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        domain = domain.rstrip("/")
        if not domain:
            raise ValueError("domain must not be empty")
        return domain

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"

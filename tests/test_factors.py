"""Tests for the factor challenge loops."""

from __future__ import annotations

import json
import threading

import httpx
import pytest

from oktadance.context import Context
from oktadance.exceptions import (
    CancelledError,
    ConfigError,
    DeadlineExceeded,
    MfaInputError,
    ProtocolError,
)
from oktadance.factors import (
    POLL_INTERVAL,
    CodeFactor,
    PushFactor,
    factor_from_data,
)
from oktadance.models import DanceConfig, FactorData
from oktadance.transport import Transport
from scripted import ScriptedProvider, authn, verify_path


class ScriptedCodes:
    """MFA handler returning queued codes and counting reads."""

    def __init__(self, *codes: str) -> None:
        self.codes = list(codes)
        self.reads = 0

    def select(self, factors):
        return factors[0]

    def read_code(self, factor):
        self.reads += 1
        return self.codes.pop(0)


@pytest.fixture
def transport(provider: ScriptedProvider, config: DanceConfig):
    client = provider.client()
    yield Transport(config, http_client=client)
    client.close()


def _bodies(provider: ScriptedProvider, factor_id: str) -> list[dict]:
    return [json.loads(r.content) for r in provider.calls("POST", verify_path(factor_id))]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestFactorFromData:
    def test_push_tag_builds_push_factor(self) -> None:
        factor = factor_from_data(FactorData(id="opf1", factor_type="push", provider="OKTA"))
        assert isinstance(factor, PushFactor)
        assert (factor.id, factor.factor_type, factor.provider) == ("opf1", "push", "OKTA")

    @pytest.mark.parametrize(
        "factor_type", ["sms", "call", "email", "token:software:totp", "token:hardware", ""]
    )
    def test_other_tags_build_code_factor(self, factor_type: str) -> None:
        factor = factor_from_data(FactorData(id="f", factor_type=factor_type, provider="OKTA"))
        assert isinstance(factor, CodeFactor)

    def test_equality_covers_kind_and_fields(self) -> None:
        assert PushFactor("a", "push", "OKTA") == PushFactor("a", "push", "OKTA")
        assert PushFactor("a", "push", "OKTA") != PushFactor("b", "push", "OKTA")
        assert PushFactor("a", "push", "OKTA") != CodeFactor("a", "push", "OKTA")
        assert len({PushFactor("a", "push", "OKTA"), PushFactor("a", "push", "OKTA")}) == 1


# ---------------------------------------------------------------------------
# Push polling
# ---------------------------------------------------------------------------


class TestPushFactor:
    def test_polls_until_success_with_fixed_wait(
        self, transport: Transport, provider: ScriptedProvider, sleeps: list[float]
    ) -> None:
        provider.add(
            "POST",
            verify_path("opf1"),
            authn("MFA_CHALLENGE", stateToken="st-1", factorResult="WAITING"),
            authn("MFA_CHALLENGE", stateToken="st-2", factorResult="WAITING"),
            authn("SUCCESS", sessionToken="tok"),
        )
        factor = PushFactor("opf1", "push", "OKTA")

        token = factor.verify(transport, None, "st-0", Context())

        assert token == "tok"
        assert len(provider.calls("POST", verify_path("opf1"))) == 3
        assert sleeps == [POLL_INTERVAL, POLL_INTERVAL]
        assert POLL_INTERVAL == 2.0

    def test_carries_latest_state_token(
        self, transport: Transport, provider: ScriptedProvider, sleeps: list[float]
    ) -> None:
        provider.add(
            "POST",
            verify_path("opf1"),
            authn("MFA_CHALLENGE", stateToken="st-1"),
            authn("MFA_CHALLENGE", stateToken="st-2"),
            authn("SUCCESS", sessionToken="tok"),
        )

        PushFactor("opf1", "push", "OKTA").verify(transport, None, "st-0", Context())

        assert _bodies(provider, "opf1") == [
            {"stateToken": "st-0"},
            {"stateToken": "st-1"},
            {"stateToken": "st-2"},
        ]

    def test_rejection_carries_body(
        self, transport: Transport, provider: ScriptedProvider, sleeps: list[float]
    ) -> None:
        provider.add(
            "POST",
            verify_path("opf1"),
            authn("MFA_CHALLENGE", stateToken="st-1"),
            authn("MFA_REJECTED_BY_USER", factorResult="REJECTED"),
        )

        with pytest.raises(ProtocolError) as exc_info:
            PushFactor("opf1", "push", "OKTA").verify(transport, None, "st-0", Context())

        assert "REJECTED" in exc_info.value.body
        assert exc_info.value.status_code == 200
        assert sleeps == [POLL_INTERVAL]

    def test_http_error_is_protocol_error(
        self, transport: Transport, provider: ScriptedProvider
    ) -> None:
        provider.add(
            "POST",
            verify_path("opf1"),
            httpx.Response(403, json={"errorSummary": "Invalid state token"}),
        )

        with pytest.raises(ProtocolError, match="Invalid state token") as exc_info:
            PushFactor("opf1", "push", "OKTA").verify(transport, None, "st-0", Context())

        assert exc_info.value.status_code == 403

    def test_wrong_shape_body_is_protocol_error(
        self, transport: Transport, provider: ScriptedProvider
    ) -> None:
        provider.add("POST", verify_path("opf1"), httpx.Response(200, json=["unexpected"]))

        with pytest.raises(ProtocolError, match="unexpected response body") as exc_info:
            PushFactor("opf1", "push", "OKTA").verify(transport, None, "st-0", Context())

        assert exc_info.value.status_code == 200
        assert "unexpected" in exc_info.value.body

    def test_max_wait_stops_polling(
        self, transport: Transport, provider: ScriptedProvider, sleeps: list[float]
    ) -> None:
        provider.add("POST", verify_path("opf1"), authn("MFA_CHALLENGE", stateToken="st-1"))

        with pytest.raises(DeadlineExceeded, match="not completed"):
            PushFactor("opf1", "push", "OKTA").verify(
                transport, None, "st-0", Context(), max_wait=0.5
            )

        assert len(provider.requests) == 1
        assert sleeps == []

    def test_cancel_during_wait_aborts_loop(
        self, transport: Transport, provider: ScriptedProvider
    ) -> None:
        provider.add("POST", verify_path("opf1"), authn("MFA_CHALLENGE", stateToken="st-1"))
        ctx = Context()
        timer = threading.Timer(0.05, ctx.cancel)
        timer.start()
        try:
            with pytest.raises(CancelledError):
                PushFactor("opf1", "push", "OKTA").verify(transport, None, "st-0", ctx)
        finally:
            timer.cancel()

        assert len(provider.requests) == 1

    def test_cancelled_context_sends_nothing(
        self, transport: Transport, provider: ScriptedProvider
    ) -> None:
        ctx = Context()
        ctx.cancel()

        with pytest.raises(CancelledError):
            PushFactor("opf1", "push", "OKTA").verify(transport, None, "st-0", ctx)

        assert provider.requests == []


# ---------------------------------------------------------------------------
# One-time codes
# ---------------------------------------------------------------------------


class TestCodeFactor:
    def test_wrong_code_then_right_code(
        self, transport: Transport, provider: ScriptedProvider, sleeps: list[float]
    ) -> None:
        provider.add(
            "POST",
            verify_path("sms1"),
            authn("MFA_CHALLENGE", stateToken="st-1"),
            authn("SUCCESS", sessionToken="tok"),
        )
        mfa = ScriptedCodes("111111", "222222")

        token = CodeFactor("sms1", "sms", "OKTA").verify(transport, mfa, "st-0", Context())

        assert token == "tok"
        assert mfa.reads == 2
        assert _bodies(provider, "sms1") == [
            {"stateToken": "st-0", "passCode": "111111"},
            {"stateToken": "st-1", "passCode": "222222"},
        ]

    def test_requires_handler(self, transport: Transport, provider: ScriptedProvider) -> None:
        with pytest.raises(ConfigError):
            CodeFactor("sms1", "sms", "OKTA").verify(transport, None, "st-0", Context())

        assert provider.requests == []

    def test_read_failure_is_wrapped(
        self, transport: Transport, provider: ScriptedProvider
    ) -> None:
        class Broken(ScriptedCodes):
            def read_code(self, factor):
                raise EOFError("no input")

        with pytest.raises(MfaInputError, match="Error reading MFA input: no input"):
            CodeFactor("sms1", "sms", "OKTA").verify(transport, Broken(), "st-0", Context())

        assert provider.requests == []

    def test_oktadance_errors_from_handler_pass_through(
        self, transport: Transport, provider: ScriptedProvider
    ) -> None:
        class Cancelling(ScriptedCodes):
            def read_code(self, factor):
                raise CancelledError("user gave up")

        with pytest.raises(CancelledError, match="user gave up"):
            CodeFactor("sms1", "sms", "OKTA").verify(transport, Cancelling(), "st-0", Context())

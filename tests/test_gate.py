"""Access gate decision tests (no HTTP)."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from edgegate.config.rate_limit_defaults import UNKNOWN_CLIENT
from edgegate.config.source import ConfigSource
from edgegate.engine.gate import AccessGate, AuthOutcome, get_gate, reset_gate
from edgegate.engine.ratelimit import FailureRateLimiter
from tests.helpers.gate import TENANT_ENV, basic_auth


@pytest.fixture
def env():
    return dict(TENANT_ENV)


@pytest.fixture
def gate(env, clock):
    return AccessGate(
        source=ConfigSource(env),
        rate_limiter=FailureRateLimiter(clock=clock),
    )


class TestResolveHost:
    def test_rejects_out_of_scope_host(self, gate):
        assert not gate.resolve_host("public.example.net").allowed

    def test_public_tenant(self, gate):
        result = gate.resolve_host("public.example.com")
        assert result.allowed
        assert result.subdomain == "public"
        assert not result.protected
        assert result.target_url == "https://public-target.example.com/"

    def test_protected_tenant(self, gate):
        result = gate.resolve_host("admin.example.com")
        assert result.protected
        assert result.target_url == "https://admin-target.example.com/"

    def test_mixed_case_hostname(self, gate):
        result = gate.resolve_host("Admin.Example.com")
        assert result.allowed
        assert result.subdomain == "admin"
        assert result.protected
        assert result.target_url == "https://admin-target.example.com/"

    def test_unknown_tenant_has_no_target(self, gate):
        result = gate.resolve_host("unknown.test.org")
        assert result.allowed
        assert result.subdomain == "unknown"
        assert result.target_url is None

    def test_multi_label_tenant_uses_underscore_key(self, gate, env):
        env["LINK_FOO_BAR"] = "https://foobar.example.org/"
        result = gate.resolve_host("foo.bar.example.com")
        assert result.subdomain == "foo.bar"
        assert result.target_url == "https://foobar.example.org/"

    def test_protection_is_case_sensitive(self, gate, env):
        env["PROTECTED_SUBDOMAINS"] = "Admin"
        assert not gate.resolve_host("admin.example.com").protected

    def test_empty_suffixes_allow_all_hosts(self, gate, env):
        env["ALLOWED_HOST_SUFFIXES"] = ""
        result = gate.resolve_host("anything.example.net")
        assert result.allowed
        assert result.subdomain == ""
        assert result.target_url is None

    def test_config_change_picked_up(self, gate, env):
        assert not gate.resolve_host("public.newdomain.com").allowed
        env["ALLOWED_HOST_SUFFIXES"] = ".example.com,.newdomain.com"
        assert gate.resolve_host("public.newdomain.com").allowed

    def test_invalidate_forces_reparse(self, gate):
        first = gate.config()
        assert gate.config() is first
        gate.invalidate()
        assert gate.config() is not first


class TestAuthorize:
    def test_valid_credentials(self, gate):
        decision = gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "adminpass"))
        assert decision.outcome is AuthOutcome.AUTHORIZED
        assert decision.allowed

    def test_missing_header(self, gate):
        decision = gate.authorize("admin", "1.2.3.4", None)
        assert decision.outcome is AuthOutcome.UNAUTHORIZED
        assert gate.rate_limiter.entry_count == 1

    def test_wrong_password_registers_failure(self, gate):
        gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "nope"))
        assert ("1.2.3.4", "admin") in gate.rate_limiter

    def test_success_clears_failures(self, gate):
        gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "nope"))
        gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "adminpass"))
        assert ("1.2.3.4", "admin") not in gate.rate_limiter

    def test_fallback_credentials(self, gate, env):
        env["PROTECTED_SUBDOMAINS"] = "admin,test"
        decision = gate.authorize("test", "1.2.3.4", basic_auth("fallbackuser", "fallbackpass"))
        assert decision.allowed

    def test_fallback_not_accepted_when_tenant_has_own_pair(self, gate):
        decision = gate.authorize("admin", "1.2.3.4", basic_auth("fallbackuser", "fallbackpass"))
        assert decision.outcome is AuthOutcome.UNAUTHORIZED

    def test_unconfigured_tenant_refused_without_state_change(self, gate, env):
        del env["FALLBACK_USER"]
        del env["FALLBACK_PASS"]
        decision = gate.authorize("orphan", "1.2.3.4", basic_auth("", ""))
        assert decision.outcome is AuthOutcome.UNAUTHORIZED
        assert gate.rate_limiter.entry_count == 0

    def test_empty_multi_user_array_refuses_everyone(self, gate, env):
        env["USERS_ADMIN"] = "[]"
        decision = gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "adminpass"))
        assert decision.outcome is AuthOutcome.UNAUTHORIZED

    def test_multi_user(self, gate, env):
        env["USERS_ADMIN"] = json.dumps([{"user": "a", "pass": "1"}, {"user": "b", "pass": "2"}])
        assert gate.authorize("admin", "1.2.3.4", basic_auth("a", "1")).allowed
        assert gate.authorize("admin", "1.2.3.4", basic_auth("b", "2")).allowed
        assert not gate.authorize("admin", "1.2.3.4", basic_auth("a", "2")).allowed

    def test_rate_limited_after_threshold(self, gate):
        for _ in range(10):
            gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "nope"))
        decision = gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "adminpass"))
        assert decision.outcome is AuthOutcome.RATE_LIMITED
        assert decision.retry_after == 600

    def test_rate_limited_at_window_end_has_positive_retry(self, gate, clock):
        for _ in range(10):
            gate.authorize("admin", "1.2.3.4", None)
        clock.advance(600)
        decision = gate.authorize("admin", "1.2.3.4", None)
        assert decision.outcome is AuthOutcome.RATE_LIMITED
        assert decision.retry_after == 1

    def test_unknown_client_limited_after_three(self, gate):
        for _ in range(3):
            gate.authorize("admin", UNKNOWN_CLIENT, None)
        decision = gate.authorize("admin", UNKNOWN_CLIENT, None)
        assert decision.outcome is AuthOutcome.RATE_LIMITED

    def test_rate_limited_client_never_decodes(self, gate):
        for _ in range(10):
            gate.authorize("admin", "1.2.3.4", None)
        with patch("edgegate.engine.gate.check_basic_auth") as check:
            decision = gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "adminpass"))
        check.assert_not_called()
        assert decision.outcome is AuthOutcome.RATE_LIMITED

    def test_window_expiry_restores_access(self, gate, clock):
        for _ in range(10):
            gate.authorize("admin", "1.2.3.4", None)
        clock.advance(601)
        decision = gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "adminpass"))
        assert decision.allowed

    def test_oversized_header_counts_as_failure_without_decode(self, gate):
        header = "Basic " + "A" * 5000
        with patch("edgegate.engine.gate.check_basic_auth") as check:
            decision = gate.authorize("admin", "1.2.3.4", header)
        check.assert_not_called()
        assert decision.outcome is AuthOutcome.UNAUTHORIZED
        assert gate.rate_limiter.register_failed_attempt("1.2.3.4", "admin") == 2

    def test_header_at_limit_is_decoded(self, env):
        gate = AccessGate(source=ConfigSource(env), max_auth_header_length=len(basic_auth("adminuser", "adminpass")))
        assert gate.authorize("admin", "1.2.3.4", basic_auth("adminuser", "adminpass")).allowed


class TestSingleton:
    def test_get_gate_is_shared(self):
        assert get_gate() is get_gate()

    def test_reset_gate(self):
        first = get_gate()
        reset_gate()
        assert get_gate() is not first

    def test_settings_drive_limiter(self, monkeypatch):
        monkeypatch.setenv("GATE_RATE_LIMIT_MAX_FAILURES", "5")
        monkeypatch.setenv("GATE_RATE_LIMIT_MAX_KEYS", "42")
        gate = get_gate()
        assert gate.rate_limiter.max_failures == 5
        assert gate.rate_limiter.max_keys == 42

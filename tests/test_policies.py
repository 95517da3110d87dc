"""Tests for the expiry, rotation and rolling refresh policies."""

from __future__ import annotations

import datetime

from conftest import FIXED_NOW
from kit_session.keys.ring import SecretRing
from kit_session.policy.expiry import (
    compute_expiry,
    days_to_max_age,
    is_expired,
    remaining_lifetime,
)
from kit_session.policy.rolling import should_refresh
from kit_session.policy.rotation import needs_re_encrypt
from kit_session.session.data import SessionData


def _expiring_in(seconds: float) -> SessionData:
    return SessionData.build({"a": 1}, FIXED_NOW + datetime.timedelta(seconds=seconds))


class TestExpiry:
    def test_days_to_max_age(self) -> None:
        assert days_to_max_age(7) == 604800
        assert days_to_max_age(0.5) == 43200

    def test_compute_expiry(self) -> None:
        assert compute_expiry(60, FIXED_NOW) == FIXED_NOW + datetime.timedelta(minutes=1)

    def test_remaining_lifetime_may_be_negative(self) -> None:
        assert remaining_lifetime(_expiring_in(30), FIXED_NOW) == 30
        assert remaining_lifetime(_expiring_in(-1), FIXED_NOW) == -1

    def test_expired_one_second_ago(self) -> None:
        assert is_expired(_expiring_in(-1), FIXED_NOW)

    def test_expiring_exactly_now_is_expired(self) -> None:
        assert is_expired(_expiring_in(0), FIXED_NOW)

    def test_future_expiry_is_valid(self) -> None:
        assert not is_expired(_expiring_in(1), FIXED_NOW)

    def test_missing_expiry_never_expires(self) -> None:
        data = SessionData.build({"a": 1}, None)
        assert remaining_lifetime(data, FIXED_NOW) is None
        assert not is_expired(data, FIXED_NOW)


class TestRotation:
    def test_current_id_needs_nothing(self, ring: SecretRing) -> None:
        assert not needs_re_encrypt(2, ring)

    def test_older_id_needs_re_encrypt(self, ring: SecretRing) -> None:
        assert needs_re_encrypt(1, ring)

    def test_unknown_id_needs_re_encrypt(self, ring: SecretRing) -> None:
        assert needs_re_encrypt(42, ring)


class TestRollingRefresh:
    def test_disabled(self) -> None:
        assert not should_refresh(False, _expiring_in(1), 100, FIXED_NOW)

    def test_always(self) -> None:
        assert should_refresh(True, _expiring_in(99), 100, FIXED_NOW)

    def test_percentage_below_threshold_refreshes(self) -> None:
        assert should_refresh(10.0, _expiring_in(5), 100, FIXED_NOW)

    def test_percentage_above_threshold_does_not(self) -> None:
        assert not should_refresh(10.0, _expiring_in(20), 100, FIXED_NOW)

    def test_percentage_at_threshold_does_not(self) -> None:
        assert not should_refresh(10.0, _expiring_in(10), 100, FIXED_NOW)

    def test_percentage_without_expiry_refreshes(self) -> None:
        assert should_refresh(50.0, SessionData.build({}, None), 100, FIXED_NOW)

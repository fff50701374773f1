from datetime import datetime, timedelta

import pytest

from services.auth.password_expiry import (
    PASSWORD_VALIDITY_DAYS,
    calculate_expiry_date,
    days_until_expiry,
    expiry_warning_message,
    is_password_expired,
    should_show_expiry_warning,
)

NOW = datetime(2024, 5, 10, 12, 0)


def test_expiry_is_thirty_days_after_change():
    assert calculate_expiry_date(NOW) == NOW + timedelta(days=PASSWORD_VALIDITY_DAYS)


def test_expired_only_after_the_date():
    assert not is_password_expired(NOW + timedelta(seconds=1), NOW)
    assert is_password_expired(NOW - timedelta(seconds=1), NOW)
    assert not is_password_expired(None, NOW)


def test_days_until_expiry_truncates():
    assert days_until_expiry(NOW + timedelta(days=2, hours=23), NOW) == 2
    assert days_until_expiry(None, NOW) == -1


@pytest.mark.parametrize("days, warn", [(5, False), (3, True), (2, True), (1, True)])
def test_warning_window(days, warn):
    expires_at = NOW + timedelta(days=days, minutes=1)

    assert should_show_expiry_warning(expires_at, NOW) is warn


def test_warning_messages():
    assert "amanhã" in expiry_warning_message(NOW + timedelta(days=1, minutes=1), NOW)
    assert expiry_warning_message(NOW + timedelta(days=10), NOW) == ""
    assert expiry_warning_message(None, NOW) == ""

"""
Tests for the audit retention script's argument handling.
"""
from unittest.mock import MagicMock, patch

import pytest

from app.config import settings
from scripts.clean_audit_logs import clean_audit_logs, resolve_days


def test_days_defaults_to_retention_setting():
    assert resolve_days([]) == settings.audit_retention_days


def test_explicit_days_are_kept():
    assert resolve_days(["--days", "30"]) == 30


def test_zero_days_is_not_replaced_by_default():
    assert resolve_days(["--days", "0"]) == 0


@pytest.mark.anyio
async def test_zero_days_is_rejected_by_cleanup():
    session = MagicMock()
    session_factory = MagicMock()
    session_factory.return_value.__aenter__.return_value = session

    with patch("scripts.clean_audit_logs.AsyncSessionLocal", session_factory):
        with pytest.raises(ValueError, match="Retention days must be greater than 0"):
            await clean_audit_logs(0)

    session.execute.assert_not_called()

"""Tests for payout confirmation emails."""
from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

from podslice.config import settings
from podslice.models.royalty import RoyaltyStatement
from podslice.services.email_service import EmailService


def _statement():
    return RoyaltyStatement(
        uuid="stmt-1",
        organization_id="org-1",
        period_start=datetime(2025, 6, 1),
        period_end=datetime(2025, 6, 30, 23, 59, 59),
        total_views=1000,
        total_shares=50,
        calculated_amount=Decimal("1.50"),
    )


def test_payout_confirmation_sent(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")

    with patch("podslice.services.email_service.resend.Emails.send") as mock_send:
        sent = EmailService.send_payout_confirmation(["admin@acme.example.com"], "Acme Audio", _statement(), "txn_1")

    assert sent is True
    params = mock_send.call_args[0][0]
    assert params["to"] == ["admin@acme.example.com"]
    assert params["subject"] == "Your June 2025 royalty payout is on its way"
    assert "$1.50" in params["html"]
    assert "txn_1" in params["html"]


def test_payout_confirmation_skipped_without_api_key(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "")

    with patch("podslice.services.email_service.resend.Emails.send") as mock_send:
        sent = EmailService.send_payout_confirmation(["admin@acme.example.com"], "Acme Audio", _statement(), "txn_1")

    assert sent is False
    mock_send.assert_not_called()


def test_payout_confirmation_failure_is_reported(monkeypatch):
    monkeypatch.setattr(settings, "RESEND_API_KEY", "re_test")

    with patch("podslice.services.email_service.resend.Emails.send", side_effect=RuntimeError("smtp down")):
        sent = EmailService.send_payout_confirmation(["admin@acme.example.com"], "Acme Audio", _statement(), "txn_1")

    assert sent is False

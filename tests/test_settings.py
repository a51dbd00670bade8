"""
Tests for parsing run-time settings and the shared formatting helpers.

These tests verify:
  - Defaults apply when the settings table is empty
  - Operator values (shillings, percentages, booleans) parse into cents and Decimals
  - A garbage value falls back to the default instead of breaking deposits
  - Phone numbers normalise to 254XXXXXXXXX; amounts render as KES
"""

from decimal import Decimal

import pytest

from airtime_api.services.settings_service import build_ledger_settings, load_ledger_settings
from airtime_api.models.system_setting import SystemSetting
from airtime_api.utils import format_kes, format_phone_number, validate_phone_number


class TestBuildLedgerSettings:
    def test_defaults(self):
        ledger_settings = build_ledger_settings({})
        assert ledger_settings.deposit_bonus_threshold_cents == 5000
        assert ledger_settings.deposit_bonus_cents == 600
        assert ledger_settings.airtime_discount_rate == Decimal("10")
        assert ledger_settings.float_minimum_cents == 10000
        assert ledger_settings.airtime_to_cash_enabled is False
        assert ledger_settings.airtime_to_cash_rate == Decimal("80")

    def test_parses_operator_units(self):
        ledger_settings = build_ledger_settings({
            "deposit_bonus_threshold": "100",
            "deposit_bonus_amount": "7.50",
            "airtime_discount_rate": "12.5",
            "airtime_to_cash_enabled": "Yes",
        })
        assert ledger_settings.deposit_bonus_threshold_cents == 10000
        assert ledger_settings.deposit_bonus_cents == 750
        assert ledger_settings.airtime_discount_rate == Decimal("12.5")
        assert ledger_settings.airtime_to_cash_enabled is True

    def test_invalid_value_falls_back(self):
        ledger_settings = build_ledger_settings({
            "deposit_bonus_amount": "six",
            "airtime_discount_rate": "NaN",
        })
        assert ledger_settings.deposit_bonus_cents == 600
        assert ledger_settings.airtime_discount_rate == Decimal("10")

    def test_unknown_keys_ignored(self):
        ledger_settings = build_ledger_settings({"legacy_flag": "1"})
        assert ledger_settings.deposit_bonus_cents == 600

    async def test_load_from_database(self, db_session):
        db_session.add(SystemSetting(key="deposit_bonus_amount", value="10"))
        await db_session.commit()

        ledger_settings = await load_ledger_settings(db_session)
        assert ledger_settings.deposit_bonus_cents == 1000
        assert ledger_settings.airtime_discount_rate == Decimal("10")


class TestPhoneNumbers:
    def test_formats(self):
        for raw in ("0712345678", "+254712345678", "254712345678", "712345678", "0712 345 678"):
            assert format_phone_number(raw) == "254712345678"

    def test_validate_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            validate_phone_number("07123")
        with pytest.raises(ValueError):
            validate_phone_number("07123456789012")


class TestFormatKes:
    def test_format(self):
        assert format_kes(6600) == "KES 66.00"
        assert format_kes(123456) == "KES 1,234.56"
        assert format_kes(5) == "KES 0.05"
        assert format_kes(-250) == "-KES 2.50"

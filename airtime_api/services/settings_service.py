"""
Settings service — run-time business settings.

Values live in the system_settings table as strings so operators can tune
them from the admin console without a deploy. Ledger code never reads the
table directly; it receives a LedgerSettings snapshot:

    ledger_settings = await settings_service.load_ledger_settings(db)
    await ledger_service.confirm_deposit(db, txn, ledger_settings, ...)

The snapshot is loaded when an outcome is APPLIED, not when the transaction
was opened. If an admin changes the bonus between an STK push and its
callback, the callback uses the new value.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.exceptions import ValidationError
from airtime_api.models.system_setting import SystemSetting

logger = logging.getLogger(__name__)


# Defaults, in the same units operators type into the admin console
# (shillings and percentages).
DEFAULT_SETTINGS: dict[str, str] = {
    "deposit_bonus_threshold": "50",
    "deposit_bonus_amount": "6",
    "airtime_discount_rate": "10",
    "statum_float_minimum": "100",
    "airtime_to_cash_enabled": "false",
    "airtime_to_cash_rate": "80",
}


@dataclass(frozen=True)
class LedgerSettings:
    """Typed, immutable view of the system settings at one point in time."""
    deposit_bonus_threshold_cents: int = 5000
    deposit_bonus_cents: int = 600
    airtime_discount_rate: Decimal = Decimal("10")
    float_minimum_cents: int = 10000
    airtime_to_cash_enabled: bool = False
    airtime_to_cash_rate: Decimal = Decimal("80")

    def deposit_bonus_for(self, amount_cents: int) -> int:
        """Bonus credited on top of a deposit of `amount_cents`."""
        if amount_cents >= self.deposit_bonus_threshold_cents:
            return self.deposit_bonus_cents
        return 0

    def airtime_value_for(self, requested_cents: int) -> int:
        """
        Airtime actually delivered for a purchase of `requested_cents`.

        The customer is debited the full requested amount; the discount is
        the platform's margin. Rounded down to whole cents.
        """
        delivered = Decimal(requested_cents) * (Decimal(100) - self.airtime_discount_rate) / 100
        return int(delivered)

    def cash_value_for(self, airtime_cents: int) -> int:
        """Cash paid out for converting `airtime_cents` of airtime."""
        return int(Decimal(airtime_cents) * self.airtime_to_cash_rate / 100)


def _parse_decimal(raw: str) -> Decimal:
    value = Decimal(raw)
    if not value.is_finite():
        raise ValueError(f"{raw!r} is not a finite number")
    return value


def _shillings_to_cents(raw: str) -> int:
    return int((_parse_decimal(raw) * 100).to_integral_value())


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on"}


_PARSERS = {
    "deposit_bonus_threshold": ("deposit_bonus_threshold_cents", _shillings_to_cents),
    "deposit_bonus_amount": ("deposit_bonus_cents", _shillings_to_cents),
    "airtime_discount_rate": ("airtime_discount_rate", _parse_decimal),
    "statum_float_minimum": ("float_minimum_cents", _shillings_to_cents),
    "airtime_to_cash_enabled": ("airtime_to_cash_enabled", _parse_bool),
    "airtime_to_cash_rate": ("airtime_to_cash_rate", _parse_decimal),
}


def build_ledger_settings(values: dict[str, str]) -> LedgerSettings:
    """
    Parse raw key/value strings into a LedgerSettings snapshot.

    Missing keys take their defaults. A value that fails to parse is logged
    and also falls back to the default — a typo in the admin console must
    not take deposits down.
    """
    merged = {**DEFAULT_SETTINGS, **values}
    fields = {}
    for key, (field_name, parse) in _PARSERS.items():
        try:
            fields[field_name] = parse(merged[key])
        except (InvalidOperation, ValueError):
            logger.warning("Invalid value %r for setting %s; using default", merged[key], key)
            fields[field_name] = parse(DEFAULT_SETTINGS[key])
    return LedgerSettings(**fields)


async def load_ledger_settings(db: AsyncSession) -> LedgerSettings:
    """Read the system_settings table and return a fresh snapshot."""
    result = await db.execute(select(SystemSetting))
    values = {row.key: row.value for row in result.scalars().all()}
    return build_ledger_settings(values)


async def list_settings(db: AsyncSession) -> list[dict]:
    """
    List every known setting with its effective value.

    Settings that were never written show their default, with updated_at None.
    """
    result = await db.execute(select(SystemSetting))
    stored = {row.key: row for row in result.scalars().all()}

    keys = sorted(set(DEFAULT_SETTINGS) | set(stored))
    return [
        {
            "key": key,
            "value": stored[key].value if key in stored else DEFAULT_SETTINGS[key],
            "updated_at": stored[key].updated_at if key in stored else None,
        }
        for key in keys
    ]


async def update_setting(db: AsyncSession, key: str, value: str) -> SystemSetting:
    """
    Create or replace a setting.

    Raises:
        ValidationError: If the key is unknown or the value doesn't parse.
    """
    if key not in DEFAULT_SETTINGS:
        raise ValidationError(f"Unknown setting {key}")

    _, parse = _PARSERS[key]
    try:
        parsed = parse(value)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid value {value!r} for setting {key}")

    if not isinstance(parsed, bool):
        if parsed < 0 or (key.endswith("_rate") and parsed > 100):
            raise ValidationError(f"Value {value!r} is out of range for setting {key}")

    setting = await db.get(SystemSetting, key)
    if setting is None:
        setting = SystemSetting(key=key, value=value)
        db.add(setting)
    else:
        setting.value = value
        setting.updated_at = datetime.now(timezone.utc)
    await db.flush()

    logger.info("Setting %s updated to %r", key, value)
    return setting

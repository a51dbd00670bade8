"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata knows every table when create_all runs
  2. Other modules can import from airtime_api.models directly
"""

from airtime_api.models.user import User, UserType  # noqa: F401
from airtime_api.models.account import Account  # noqa: F401
from airtime_api.models.transaction import Transaction  # noqa: F401
from airtime_api.models.queued_purchase import QueuedPurchase  # noqa: F401
from airtime_api.models.notification import Notification  # noqa: F401
from airtime_api.models.deposit_verification import DepositVerification  # noqa: F401
from airtime_api.models.conversion_request import ConversionRequest  # noqa: F401
from airtime_api.models.system_setting import SystemSetting  # noqa: F401

"""
Payment provider adapters.

Route handlers never build providers themselves; they receive them through
the FastAPI dependencies in airtime_api.dependencies, which tests override
with in-memory fakes.
"""

from airtime_api.providers.base import (  # noqa: F401
    CollectionProvider,
    DisbursementProvider,
    ProviderResult,
    ProviderState,
)
from airtime_api.providers.paynecta import PayNectaProvider  # noqa: F401
from airtime_api.providers.statum import StatumProvider  # noqa: F401

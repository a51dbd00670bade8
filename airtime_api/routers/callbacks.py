"""
Callbacks router — webhooks from the payment providers.

    POST /callback/paynecta   — STK push outcome (deposits and direct purchases)
    POST /callback/statum     — Asynchronous airtime delivery outcome

Public by necessity: the providers can't log in. Safety comes from the
ledger instead: a callback can only resolve a transaction that is still
pending and is matched by exact reference, and resolving is idempotent.

Every known outcome, including a duplicate delivery, is acknowledged with
{"success": true}. An unknown reference gets {"success": false}, still with
HTTP 200, so the provider stops retrying.
"""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from airtime_api.database import get_db
from airtime_api.dependencies import get_disbursement_provider, get_ledger_settings
from airtime_api.providers import DisbursementProvider
from airtime_api.services import payment_service
from airtime_api.services.settings_service import LedgerSettings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{provider}",
    summary="Receive a provider callback",
)
async def receive_callback(
    provider: str,
    payload: dict = Body(...),
    disbursement: DisbursementProvider = Depends(get_disbursement_provider),
    ledger_settings: LedgerSettings = Depends(get_ledger_settings),
    db: AsyncSession = Depends(get_db),
):
    logger.info("Callback received from %s", provider)
    logger.debug("Callback payload from %s: %s", provider, payload)
    return await payment_service.handle_callback(
        db, provider, payload, ledger_settings, disbursement
    )

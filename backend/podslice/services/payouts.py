"""Payout onboarding and the royalty payout state machine.

Statement payment states::

    pending -> processing -> paid
       |            |
       +-> failed <-+

``paid`` is terminal. ``failed`` only goes back to ``pending`` through a fresh
royalty calculation, never from here.
"""
import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import AsyncIterator, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from podslice.errors import (
    AccountNotActive,
    AlreadyPaid,
    NotFoundError,
    OnboardingIncomplete,
    PayeeAlreadyConfigured,
    PayoutInProgress,
    TaxProfileMissing,
    ValidationFailed,
    ZeroAmount,
)
from podslice.models.organization import (
    Organization,
    PAYOUT_ACTIVE,
    PAYOUT_FAILED,
    PAYOUT_PENDING,
    TAX_FORM_SUBMITTED,
)
from podslice.models.royalty import (
    RoyaltyStatement,
    STATUS_FAILED,
    STATUS_PAID,
    STATUS_PENDING,
    STATUS_PROCESSING,
)
from podslice.models.user import User
from podslice.services.payoneer import PayeeInput, PayoneerClient, PayoutRequest

logger = logging.getLogger(__name__)

# Royalties are computed in US dollars and always paid out in them
PAYOUT_CURRENCY = "USD"

# Payoneer payee status -> organization payout_status
PAYEE_STATUS_MAP = {
    "active": PAYOUT_ACTIVE,
    "pending": PAYOUT_PENDING,
    "suspended": PAYOUT_FAILED,
    "failed": PAYOUT_FAILED,
}


@dataclass
class PayoutReceipt:
    transaction_id: str
    status: str
    amount: Decimal
    currency: str


@dataclass
class PayoutStatusSnapshot:
    status: str  # "not_configured" | "configured"
    payee_id: Optional[str] = None
    payout_status: Optional[str] = None
    verification_status: Optional[str] = None
    created_at: Optional[str] = None


class PayoutLocks:
    """In-process mutual exclusion keyed by statement id.

    Serializes payout attempts for one statement inside a worker process. The
    conditional pending -> processing update in ``process_payout`` is what
    guards across processes.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._waiters: Dict[str, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, statement_id: str) -> AsyncIterator[None]:
        self._waiters[statement_id] += 1
        lock = self._locks[statement_id]
        try:
            async with lock:
                yield
        finally:
            self._waiters[statement_id] -= 1
            if self._waiters[statement_id] == 0:
                del self._waiters[statement_id]
                del self._locks[statement_id]

    def __len__(self) -> int:
        return len(self._locks)


payout_locks = PayoutLocks()


# ── Onboarding gate ─────────────────────────────────────────────────────────


async def register_payee(
    db: AsyncSession,
    organization: Organization,
    payee: PayeeInput,
    client: PayoneerClient,
) -> str:
    """
    Register the organization as a Payoneer payee.

    The account is marked ACTIVE straight away; later status syncs may move it
    to PENDING or FAILED. Refuses to run twice for the same organization.
    """
    if organization.payoneer_payee_id:
        raise PayeeAlreadyConfigured()

    payee_id = await client.create_payee(payee)

    organization.payoneer_payee_id = payee_id
    organization.payout_status = PAYOUT_ACTIVE
    await db.commit()

    logger.info(f"Organization {organization.uuid} registered as Payoneer payee {payee_id}")
    return payee_id


async def submit_tax_profile(
    db: AsyncSession,
    organization: Organization,
    tax_jurisdiction: str,
    entity_type: str,
    agreed_to_tax_terms: bool,
) -> Organization:
    """Mark the organization's tax form as submitted. There is no way back.

    The tax identifier itself is never stored here; Payoneer keeps it.
    """
    if not agreed_to_tax_terms:
        raise ValidationFailed("You must agree to the tax terms")
    organization.tax_form_status = TAX_FORM_SUBMITTED
    await db.commit()
    logger.info(
        f"Tax profile submitted for organization {organization.uuid} "
        f"({entity_type}, {tax_jurisdiction.upper()})"
    )
    return organization


async def sync_payout_status(
    db: AsyncSession,
    organization: Organization,
    client: PayoneerClient,
) -> PayoutStatusSnapshot:
    """Pull the payee's live status from Payoneer and store it if it changed."""
    if not organization.payoneer_payee_id:
        return PayoutStatusSnapshot(status="not_configured")

    payee_status = await client.get_payee_status(organization.payoneer_payee_id)
    internal_status = PAYEE_STATUS_MAP.get(payee_status.status, PAYOUT_PENDING)

    if organization.payout_status != internal_status:
        logger.info(
            f"Organization {organization.uuid} payout status "
            f"{organization.payout_status} -> {internal_status}"
        )
        organization.payout_status = internal_status
        await db.commit()

    return PayoutStatusSnapshot(
        status="configured",
        payee_id=payee_status.payee_id,
        payout_status=internal_status,
        verification_status=payee_status.verification_status,
        created_at=payee_status.created_at,
    )


# ── Payout state machine ────────────────────────────────────────────────────


async def _load_for_payout(db: AsyncSession, user: User, statement_id: str):
    result = await db.execute(
        select(RoyaltyStatement).where(
            RoyaltyStatement.uuid == statement_id,
            RoyaltyStatement.organization_id == user.organization_id,
        )
    )
    statement = result.scalar_one_or_none()
    if statement is None:
        raise NotFoundError("Royalty not found")

    result = await db.execute(select(Organization).where(Organization.uuid == user.organization_id))
    organization = result.scalar_one_or_none()
    if organization is None:
        raise NotFoundError("Organization not found")

    return statement, organization


def check_payout_preconditions(organization: Organization, statement: RoyaltyStatement) -> None:
    """Raise the first unmet payout precondition, in the order callers see them."""
    if not organization.payoneer_payee_id:
        raise OnboardingIncomplete()
    if organization.tax_form_status != TAX_FORM_SUBMITTED:
        raise TaxProfileMissing()
    if organization.payout_status != PAYOUT_ACTIVE:
        raise AccountNotActive(organization.payout_status)
    if statement.payment_status == STATUS_PAID:
        raise AlreadyPaid()
    if not statement.calculated_amount or Decimal(statement.calculated_amount) <= 0:
        raise ZeroAmount()


async def _claim_statement(db: AsyncSession, statement: RoyaltyStatement) -> None:
    """pending -> processing, only if nobody else moved it first."""
    result = await db.execute(
        update(RoyaltyStatement)
        .where(
            RoyaltyStatement.uuid == statement.uuid,
            RoyaltyStatement.payment_status == STATUS_PENDING,
        )
        .values(payment_status=STATUS_PROCESSING, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        await db.refresh(statement)
        if statement.payment_status == STATUS_PAID:
            raise AlreadyPaid()
        raise PayoutInProgress(statement.payment_status)
    await db.commit()
    await db.refresh(statement)


async def _mark_failed(db: AsyncSession, statement_id: str) -> None:
    """Best effort: a failure here is logged, the original error still wins."""
    try:
        await db.rollback()
        await db.execute(
            update(RoyaltyStatement)
            .where(
                RoyaltyStatement.uuid == statement_id,
                RoyaltyStatement.payment_status == STATUS_PROCESSING,
            )
            .values(payment_status=STATUS_FAILED, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.warning(f"Royalty {statement_id} marked failed")
    except Exception as revert_error:
        logger.error(f"[Payout Revert] Could not mark royalty {statement_id} failed: {revert_error}")


async def process_payout(
    db: AsyncSession,
    user: User,
    statement_id: str,
    client: PayoneerClient,
) -> PayoutReceipt:
    """
    Pay out a royalty statement through Payoneer.

    Preconditions are checked in order and fail without side effects. The
    statement is committed as ``processing`` before the provider is called, so a
    crash mid-call leaves it there for manual reconciliation.
    """
    statement, organization = await _load_for_payout(db, user, statement_id)
    check_payout_preconditions(organization, statement)

    await _claim_statement(db, statement)
    amount = Decimal(statement.calculated_amount)
    currency = PAYOUT_CURRENCY

    try:
        payout = await client.create_payout(PayoutRequest(
            payee_id=organization.payoneer_payee_id,
            amount=amount,
            currency=currency,
            reference=f"royalty-{statement_id}",
            description=(
                f"Royalty payout for period {statement.period_start:%Y-%m-%d} "
                f"to {statement.period_end:%Y-%m-%d}"
            ),
        ))

        statement.payment_status = STATUS_PAID
        statement.paid_at = datetime.utcnow()
        statement.external_transaction_id = payout.transaction_id
        await db.commit()
    except Exception as e:
        logger.error(f"[Payout] Royalty {statement_id} failed: {e}")
        await _mark_failed(db, statement_id)
        raise

    logger.info(f"Royalty {statement_id} paid: {payout.transaction_id} ({amount} {currency})")
    return PayoutReceipt(
        transaction_id=payout.transaction_id,
        status=payout.status,
        amount=payout.amount,
        currency=payout.currency,
    )

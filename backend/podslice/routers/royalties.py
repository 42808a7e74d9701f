"""Royalty statements router: calculation, listing and payouts."""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from podslice.database import get_db
from podslice.models.organization import Organization
from podslice.models.user import User
from podslice.auth.dependencies import admin_required, ensure_organization_admin, get_current_active_user
from podslice.schemas.royalties import (
    CalculateRoyaltiesRequest,
    PayoutDetails, PayoutResponse,
    StatementDetailResponse, StatementListResponse, StatementResponse,
)
from podslice.services.email_service import EmailService
from podslice.services.payoneer import PayoneerClient, get_payoneer_client
from podslice.services.payouts import payout_locks, process_payout
from podslice.services.royalties import calculate_monthly_royalties, get_statement, list_statements

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/royalties/calculate", response_model=StatementResponse)
async def calculate_royalties(
    request_data: CalculateRoyaltiesRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Calculate (or recalculate) an organization's royalties for one month.

    - Restricted to admins of that organization
    - Recalculation overwrites totals until the statement is paid
    """
    ensure_organization_admin(current_user, request_data.organization_id)

    statement = await calculate_monthly_royalties(
        db,
        request_data.organization_id,
        request_data.year,
        request_data.month,
    )
    return StatementResponse.model_validate(statement)


@router.get("/api/royalties", response_model=StatementListResponse)
async def get_royalties(
    page: int = 1,
    page_size: int = 50,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """Royalty statements of the current organization (paginated, newest first)."""
    page = max(page, 1)
    page_size = min(max(page_size, 1), 100)

    statements, total = await list_statements(db, current_user.organization_id, page, page_size)
    return StatementListResponse(
        statements=[StatementResponse.model_validate(s) for s in statements],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/api/royalties/{royalty_id}", response_model=StatementDetailResponse)
async def get_royalty(
    royalty_id: str,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
):
    """One statement with its per-summary line items."""
    statement = await get_statement(db, current_user.organization_id, royalty_id, with_line_items=True)
    return StatementDetailResponse.model_validate(statement)


@router.post("/api/royalties/{royalty_id}/payout", response_model=PayoutResponse)
async def payout_royalty(
    royalty_id: str,
    current_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db),
    client: PayoneerClient = Depends(get_payoneer_client),
):
    """
    Pay a royalty statement out through Payoneer.

    - Requires completed onboarding, a submitted tax profile and an ACTIVE account
    - Refuses paid, zero-amount and already-processing statements
    - On provider failure the statement is marked failed and the error returned
    """
    async with payout_locks.hold(royalty_id):
        receipt = await process_payout(db, current_user, royalty_id, client)

    statement = await get_statement(db, current_user.organization_id, royalty_id)
    # The payout is committed; a failed notification must not turn it into an error
    try:
        await _notify_admins(db, statement, receipt.transaction_id)
    except SQLAlchemyError as e:
        logger.error(f"Payout confirmation for royalty {royalty_id} not sent: {e}")

    return PayoutResponse(
        royalty=StatementResponse.model_validate(statement),
        payout=PayoutDetails(
            transaction_id=receipt.transaction_id,
            status=receipt.status,
            amount=receipt.amount,
            currency=receipt.currency,
        ),
    )


async def _notify_admins(db: AsyncSession, statement, transaction_id: str) -> None:
    result = await db.execute(
        select(User.email).where(
            User.organization_id == statement.organization_id,
            User.user_role == "admin",
        )
    )
    recipients = list(result.scalars().all())
    org_result = await db.execute(select(Organization.name).where(Organization.uuid == statement.organization_id))
    EmailService.send_payout_confirmation(recipients, org_result.scalar_one(), statement, transaction_id)

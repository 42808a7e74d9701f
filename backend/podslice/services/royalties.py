"""Monthly royalty calculation.

Rates
-----
Each engagement unit earns a fixed amount (USD):

* view: 0.001
* share: 0.01
* click: 0.005

``calculate_royalty`` sums the three and rounds half-up to cents.

Statement source
----------------
A month's statement sums the lifetime ``view_count`` / ``share_count`` of the
organization's summaries *created* in that month. Engagement that arrives in
later months on older summaries is therefore never paid out; this mirrors the
production behaviour and is tracked as a known limitation.
"""
import calendar
import logging
from datetime import datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Tuple

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from podslice.errors import AlreadyPaid, CalculationError, NotFoundError, PayoutInProgress, ValidationFailed
from podslice.models.content import Episode, Podcast, Summary
from podslice.models.royalty import (
    RoyaltyLineItem,
    RoyaltyStatement,
    STATUS_FAILED,
    STATUS_PAID,
    STATUS_PENDING,
    STATUS_PROCESSING,
)

logger = logging.getLogger(__name__)

ROYALTY_RATES = {
    "view": Decimal("0.001"),
    "share": Decimal("0.01"),
    "click": Decimal("0.005"),
}

CENTS = Decimal("0.01")


def calculate_royalty(views: int, shares: int, clicks: int = 0) -> Decimal:
    """Amount owed for the given engagement, rounded to 2 decimal places."""
    amount = (
        views * ROYALTY_RATES["view"]
        + shares * ROYALTY_RATES["share"]
        + clicks * ROYALTY_RATES["click"]
    )
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def get_payout_period(year: int, month: int) -> Tuple[datetime, datetime]:
    """First instant and last instant (end of the last day) of a calendar month."""
    if not 1 <= month <= 12:
        raise ValidationFailed("month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1)
    end = datetime.combine(datetime(year, month, last_day).date(), time.max)
    return start, end


def format_currency(amount: Decimal) -> str:
    """Format an amount as US dollars, e.g. ``$1,234.50``."""
    quantized = Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    return f"{sign}${abs(quantized):,.2f}"


async def _period_summaries(
    db: AsyncSession,
    organization_id: str,
    start: datetime,
    end: datetime,
) -> Sequence[Tuple[str, int, int]]:
    result = await db.execute(
        select(Summary.uuid, Summary.view_count, Summary.share_count)
        .join(Episode, Episode.uuid == Summary.episode_id)
        .join(Podcast, Podcast.uuid == Episode.podcast_id)
        .where(
            Podcast.organization_id == organization_id,
            Summary.created_at >= start,
            Summary.created_at <= end,
        )
        .order_by(Summary.created_at)
    )
    return result.all()


async def calculate_monthly_royalties(
    db: AsyncSession,
    organization_id: str,
    year: int,
    month: int,
) -> RoyaltyStatement:
    """
    Create or refresh the royalty statement of an organization for one month.

    - Existing statement: totals and amount are overwritten; line items are left
      as they were. A failed statement goes back to pending so it can be retried.
    - New statement: created as pending with one line item per summary.

    Raises AlreadyPaid / PayoutInProgress if the statement can no longer change,
    and CalculationError on unexpected database failures.
    """
    start, end = get_payout_period(year, month)

    try:
        summaries = await _period_summaries(db, organization_id, start, end)
        total_views = sum(views for _, views, _ in summaries)
        total_shares = sum(shares for _, _, shares in summaries)
        calculated_amount = calculate_royalty(total_views, total_shares)

        result = await db.execute(
            select(RoyaltyStatement).where(
                RoyaltyStatement.organization_id == organization_id,
                RoyaltyStatement.period_start == start,
                RoyaltyStatement.period_end == end,
            )
        )
        statement = result.scalar_one_or_none()

        if statement is not None:
            if statement.payment_status == STATUS_PAID:
                raise AlreadyPaid("Royalties for this period have already been paid")
            if statement.payment_status == STATUS_PROCESSING:
                raise PayoutInProgress(statement.payment_status)

            if statement.payment_status == STATUS_FAILED:
                logger.info(f"Resetting failed royalty {statement.uuid} to pending")
                statement.payment_status = STATUS_PENDING
            statement.total_views = total_views
            statement.total_shares = total_shares
            statement.calculated_amount = calculated_amount
            statement.updated_at = datetime.utcnow()
        else:
            statement = RoyaltyStatement(
                organization_id=organization_id,
                period_start=start,
                period_end=end,
                total_views=total_views,
                total_shares=total_shares,
                calculated_amount=calculated_amount,
                payment_status=STATUS_PENDING,
            )
            db.add(statement)
            await db.flush()

            for summary_id, views, shares in summaries:
                db.add(RoyaltyLineItem(
                    statement_id=statement.uuid,
                    summary_id=summary_id,
                    views=views,
                    shares=shares,
                    amount=calculate_royalty(views, shares),
                ))

        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Calculate royalties error for organization {organization_id} {year}-{month:02d}: {e}")
        raise CalculationError() from e

    logger.info(
        f"Royalty {statement.uuid} for {organization_id} {year}-{month:02d}: "
        f"{total_views} views, {total_shares} shares, {format_currency(calculated_amount)}"
    )
    return statement


async def get_statement(
    db: AsyncSession,
    organization_id: str,
    statement_id: str,
    with_line_items: bool = False,
) -> RoyaltyStatement:
    """Load a statement owned by the organization or raise NotFoundError."""
    query = select(RoyaltyStatement).where(
        RoyaltyStatement.uuid == statement_id,
        RoyaltyStatement.organization_id == organization_id,
    )
    if with_line_items:
        query = query.options(selectinload(RoyaltyStatement.line_items)).execution_options(populate_existing=True)
    result = await db.execute(query)
    statement = result.scalar_one_or_none()
    if statement is None:
        raise NotFoundError("Royalty not found")
    return statement


async def list_statements(
    db: AsyncSession,
    organization_id: str,
    page: int = 1,
    page_size: int = 50,
) -> Tuple[list[RoyaltyStatement], int]:
    """Statements of an organization, newest period first, with the total count."""
    count_result = await db.execute(
        select(func.count(RoyaltyStatement.uuid)).where(RoyaltyStatement.organization_id == organization_id)
    )
    total = count_result.scalar()

    result = await db.execute(
        select(RoyaltyStatement)
        .where(RoyaltyStatement.organization_id == organization_id)
        .order_by(RoyaltyStatement.period_start.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total

"""Tests for royalty calculation and statement endpoints."""
from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select, func

from podslice.errors import AlreadyPaid, PayoutInProgress, ValidationFailed
from podslice.models.royalty import (
    RoyaltyLineItem,
    RoyaltyStatement,
    STATUS_FAILED,
    STATUS_PAID,
    STATUS_PENDING,
    STATUS_PROCESSING,
)
from podslice.services.royalties import (
    calculate_monthly_royalties,
    calculate_royalty,
    format_currency,
    get_payout_period,
)


def test_calculate_royalty_rates():
    """0.001 per view, 0.01 per share, 0.005 per click."""
    assert calculate_royalty(1000, 0) == Decimal("1.00")
    assert calculate_royalty(0, 50) == Decimal("0.50")
    assert calculate_royalty(1000, 50) == Decimal("1.50")
    assert calculate_royalty(0, 0, clicks=100) == Decimal("0.50")
    assert calculate_royalty(0, 0) == Decimal("0.00")


def test_calculate_royalty_rounds_half_up():
    assert calculate_royalty(1234, 56) == Decimal("1.79")
    assert calculate_royalty(5, 0) == Decimal("0.01")
    assert calculate_royalty(4, 0) == Decimal("0.00")


def test_calculate_royalty_is_monotonic():
    previous = Decimal("0")
    for views in range(0, 5000, 37):
        amount = calculate_royalty(views, 3)
        assert amount >= previous
        previous = amount


def test_get_payout_period():
    start, end = get_payout_period(2024, 2)
    assert start == datetime(2024, 2, 1)
    assert end == datetime(2024, 2, 29, 23, 59, 59, 999999)

    start, end = get_payout_period(2025, 12)
    assert start == datetime(2025, 12, 1)
    assert end.day == 31

    with pytest.raises(ValidationFailed):
        get_payout_period(2025, 13)


def test_format_currency():
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("0")) == "$0.00"


async def _statement_count(db):
    result = await db.execute(select(func.count(RoyaltyStatement.uuid)))
    return result.scalar()


@pytest.mark.asyncio
async def test_calculate_monthly_royalties(test_db, organization, other_organization, make_summary):
    """Sums summaries created in the month, one line item per summary."""
    await make_summary(organization, created_at=datetime(2025, 6, 3), view_count=600, share_count=20)
    await make_summary(organization, created_at=datetime(2025, 6, 30, 23, 0), view_count=400, share_count=30)
    # Outside the month or the organization
    await make_summary(organization, created_at=datetime(2025, 5, 31, 23, 59), view_count=9999)
    await make_summary(other_organization, created_at=datetime(2025, 6, 10), view_count=9999)

    statement = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)

    assert statement.total_views == 1000
    assert statement.total_shares == 50
    assert statement.calculated_amount == Decimal("1.50")
    assert statement.payment_status == STATUS_PENDING
    assert statement.period_start == datetime(2025, 6, 1)

    items = await test_db.execute(select(RoyaltyLineItem).where(RoyaltyLineItem.statement_id == statement.uuid))
    amounts = sorted(item.amount for item in items.scalars().all())
    assert amounts == [Decimal("0.70"), Decimal("0.80")]


@pytest.mark.asyncio
async def test_recalculate_updates_existing_statement(test_db, organization, make_summary):
    """A second run overwrites totals without creating another statement."""
    summary = await make_summary(organization, view_count=1000)

    first = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)
    assert first.calculated_amount == Decimal("1.00")

    summary.view_count = 3000
    await test_db.commit()

    second = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)

    assert second.uuid == first.uuid
    assert second.total_views == 3000
    assert second.calculated_amount == Decimal("3.00")
    assert await _statement_count(test_db) == 1

    items = await test_db.execute(select(func.count(RoyaltyLineItem.uuid)))
    assert items.scalar() == 1


@pytest.mark.asyncio
async def test_recalculate_resets_failed_statement(test_db, organization, make_summary):
    await make_summary(organization, view_count=1000)
    statement = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)
    statement.payment_status = STATUS_FAILED
    await test_db.commit()

    statement = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)
    assert statement.payment_status == STATUS_PENDING


@pytest.mark.asyncio
async def test_recalculate_refuses_paid_and_processing(test_db, organization, make_summary):
    summary = await make_summary(organization, view_count=1000)
    statement = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)

    statement.payment_status = STATUS_PAID
    await test_db.commit()
    summary.view_count = 5000
    await test_db.commit()

    with pytest.raises(AlreadyPaid):
        await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)

    statement.payment_status = STATUS_PROCESSING
    await test_db.commit()
    with pytest.raises(PayoutInProgress):
        await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)

    await test_db.refresh(statement)
    assert statement.calculated_amount == Decimal("1.00")


@pytest.mark.asyncio
async def test_empty_month_yields_zero_statement(test_db, organization):
    statement = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 1)
    assert statement.total_views == 0
    assert statement.calculated_amount == Decimal("0.00")


# ── HTTP ────────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_calculate_endpoint(client, organization, admin_user, auth_headers, make_summary):
    await make_summary(organization, view_count=1234, share_count=56)

    response = await client.post(
        "/api/royalties/calculate",
        json={"organization_id": organization.uuid, "year": 2025, "month": 6},
        headers=auth_headers(admin_user),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["calculated_amount"] == "1.79"
    assert data["payment_status"] == "pending"
    assert data["total_views"] == 1234


@pytest.mark.asyncio
async def test_calculate_endpoint_authorization(
    client, organization, member_user, other_admin, auth_headers
):
    payload = {"organization_id": organization.uuid, "year": 2025, "month": 6}

    response = await client.post("/api/royalties/calculate", json=payload, headers=auth_headers(member_user))
    assert response.status_code == 403

    response = await client.post("/api/royalties/calculate", json=payload, headers=auth_headers(other_admin))
    assert response.status_code == 403
    assert response.json()["detail"] == "Not authorized"


@pytest.mark.asyncio
async def test_calculate_endpoint_validates_month(client, organization, admin_user, auth_headers):
    response = await client.post(
        "/api/royalties/calculate",
        json={"organization_id": organization.uuid, "year": 2025, "month": 13},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_and_detail_endpoints(
    client, test_db, organization, admin_user, other_admin, auth_headers, make_summary
):
    await make_summary(organization, created_at=datetime(2025, 5, 5), view_count=1000)
    await make_summary(organization, created_at=datetime(2025, 6, 5), view_count=2000, share_count=10)
    may = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 5)
    june = await calculate_monthly_royalties(test_db, organization.uuid, 2025, 6)

    response = await client.get("/api/royalties", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert [s["uuid"] for s in data["statements"]] == [june.uuid, may.uuid]

    response = await client.get(f"/api/royalties/{june.uuid}", headers=auth_headers(admin_user))
    assert response.status_code == 200
    detail = response.json()
    assert detail["calculated_amount"] == "2.10"
    assert len(detail["line_items"]) == 1
    assert detail["line_items"][0]["amount"] == "2.10"

    # Another organization's statement looks like it does not exist
    response = await client.get(f"/api/royalties/{june.uuid}", headers=auth_headers(other_admin))
    assert response.status_code == 404

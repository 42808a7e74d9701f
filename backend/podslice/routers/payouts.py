"""Payoneer onboarding router: payee registration, status sync, tax profile."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from podslice.database import get_db
from podslice.models.organization import Organization
from podslice.models.user import User
from podslice.auth.dependencies import admin_required, get_current_organization
from podslice.schemas.payouts import (
    PayeeOnboardingRequest, PayeeOnboardingResponse,
    PayoutStatusResponse,
    TaxProfileRequest, TaxProfileResponse,
)
from podslice.services.payoneer import PayeeInput, PayoneerClient, get_payoneer_client
from podslice.services.payouts import register_payee, submit_tax_profile, sync_payout_status

router = APIRouter()


@router.post("/api/payments/payoneer/onboard", response_model=PayeeOnboardingResponse)
async def onboard_payee(
    request_data: PayeeOnboardingRequest,
    current_user: User = Depends(admin_required),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
    client: PayoneerClient = Depends(get_payoneer_client),
):
    """
    Register the organization with Payoneer so royalties can be paid out.

    - Only once per organization (409 afterwards)
    - Sets payout status to ACTIVE on success
    """
    payee_id = await register_payee(db, organization, PayeeInput(**request_data.model_dump()), client)
    return PayeeOnboardingResponse(
        payee_id=payee_id,
        organization_id=organization.uuid,
        payout_status=organization.payout_status,
    )


@router.get("/api/payments/payoneer/status", response_model=PayoutStatusResponse)
async def get_payee_status(
    current_user: User = Depends(admin_required),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
    client: PayoneerClient = Depends(get_payoneer_client),
):
    """Sync and return the organization's Payoneer account status."""
    snapshot = await sync_payout_status(db, organization, client)
    if snapshot.status == "not_configured":
        return PayoutStatusResponse(status="not_configured", message="Payoneer account not yet configured")

    return PayoutStatusResponse(
        status=snapshot.status,
        payee_id=snapshot.payee_id,
        payout_status=snapshot.payout_status,
        verification_status=snapshot.verification_status,
        created_at=snapshot.created_at,
    )


@router.post("/api/payments/payoneer/tax-profile", response_model=TaxProfileResponse)
async def save_tax_profile(
    request_data: TaxProfileRequest,
    current_user: User = Depends(admin_required),
    organization: Organization = Depends(get_current_organization),
    db: AsyncSession = Depends(get_db),
):
    """Record the organization's tax profile submission."""
    await submit_tax_profile(
        db,
        organization,
        tax_jurisdiction=request_data.tax_jurisdiction,
        entity_type=request_data.entity_type,
        agreed_to_tax_terms=request_data.agreed_to_tax_terms,
    )
    return TaxProfileResponse(
        organization_id=organization.uuid,
        tax_form_status=organization.tax_form_status,
    )

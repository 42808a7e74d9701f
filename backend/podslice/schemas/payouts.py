"""Schemas for Payoneer onboarding endpoints."""
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator


EntityType = Literal["INDIVIDUAL", "BUSINESS"]


class PayeeOnboardingRequest(BaseModel):
    """Identity and bank details for Payoneer payee registration."""

    legal_name: str = Field(..., min_length=2, description="Legal name required")
    entity_type: EntityType
    email: EmailStr
    phone_number: str = Field(..., min_length=10, description="Valid phone number required")
    country: str = Field(..., min_length=2, max_length=2, description="ISO 3166-1 alpha-2 country code")
    address_line_1: str = Field(..., min_length=5)
    address_line_2: Optional[str] = None
    city: str = Field(..., min_length=2)
    state: Optional[str] = None
    postal_code: str = Field(..., min_length=3)
    account_holder_name: str = Field(..., min_length=2)
    bank_account_number: str = Field(..., min_length=5)
    bank_routing_number: Optional[str] = None
    bank_code: Optional[str] = None
    business_name: Optional[str] = None
    business_registration_number: Optional[str] = None

    @field_validator("country")
    @classmethod
    def validate_country(cls, v: str) -> str:
        if not v.isalpha():
            raise ValueError("Use ISO country code")
        return v.upper()


class PayeeOnboardingResponse(BaseModel):
    success: bool = True
    payee_id: str
    organization_id: str
    payout_status: str


class TaxProfileRequest(BaseModel):
    tax_identifier: str = Field(..., min_length=3)
    tax_jurisdiction: str = Field(..., min_length=2, max_length=2)
    entity_type: EntityType
    agreed_to_tax_terms: bool

    @field_validator("agreed_to_tax_terms")
    @classmethod
    def must_agree(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must agree to the tax terms")
        return v


class TaxProfileResponse(BaseModel):
    success: bool = True
    organization_id: str
    tax_form_status: str


class PayoutStatusResponse(BaseModel):
    status: str = Field(..., description="not_configured | configured")
    message: Optional[str] = None
    payee_id: Optional[str] = None
    payout_status: Optional[str] = None
    verification_status: Optional[str] = None
    created_at: Optional[str] = None

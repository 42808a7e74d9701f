"""Error taxonomy for the royalty pipeline.

Each error is an ``HTTPException`` so services can raise it directly and
FastAPI renders it as ``{"detail": ...}`` with the matching status code.
"""
from fastapi import HTTPException, status


class PodsliceError(HTTPException):
    """Base class; subclasses fix the status code and default message."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class ValidationFailed(PodsliceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Validation failed"


class AuthorizationError(PodsliceError):
    # Generic on purpose: never say whether the target resource exists
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized"


class NotFoundError(PodsliceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class PreconditionError(PodsliceError):
    """A payout business rule is not met. The message tells the caller how to fix it."""

    status_code = status.HTTP_400_BAD_REQUEST


class OnboardingIncomplete(PreconditionError):
    default_detail = "Payoneer account not configured. Please complete onboarding first."


class TaxProfileMissing(PreconditionError):
    default_detail = "Tax form must be submitted before payouts can be processed."


class AccountNotActive(PreconditionError):
    def __init__(self, payout_status: str):
        self.payout_status = payout_status
        super().__init__(f"Payoneer account status: {payout_status}. Cannot process payout.")


class AlreadyPaid(PreconditionError):
    default_detail = "This royalty has already been paid"


class ZeroAmount(PreconditionError):
    default_detail = "Cannot process payout with zero or negative amount"


class ConflictError(PodsliceError):
    status_code = status.HTTP_409_CONFLICT


class PayeeAlreadyConfigured(ConflictError):
    default_detail = "Payoneer account already configured for this organization"


class PayoutInProgress(ConflictError):
    def __init__(self, payment_status: str):
        self.payment_status = payment_status
        super().__init__(f"Royalty is {payment_status}; a payout can only start from pending")


class ExternalServiceError(PodsliceError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "External service error"


class PayoutProviderError(ExternalServiceError):
    """Payoneer returned an error or could not be reached."""

    def __init__(self, detail: str, provider_status: int | None = None):
        self.provider_status = provider_status
        super().__init__(detail)


class CalculationError(PodsliceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to calculate royalties"

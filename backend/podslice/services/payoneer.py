"""
Payoneer client for payee onboarding and royalty payouts.

Handles OAuth token management and the three provider calls the payout flow
needs. Set PAYONEER_MOCK=true to get synthetic responses instead of live calls.
"""

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

import httpx

from podslice.config import settings
from podslice.errors import PayoutProviderError

logger = logging.getLogger(__name__)

# Refresh the token this many seconds before the provider says it expires
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class TokenCache:
    """Access token cache owned by a single client instance."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._access_token: Optional[str] = None
        self._expires_at: float = 0.0

    def get(self) -> Optional[str]:
        """Return the cached token if it is valid for longer than the margin."""
        if self._access_token and self._expires_at > self._clock() + TOKEN_EXPIRY_MARGIN_SECONDS:
            return self._access_token
        return None

    def set(self, access_token: str, expires_in: float) -> None:
        self._access_token = access_token
        self._expires_at = self._clock() + expires_in

    def clear(self) -> None:
        self._access_token = None
        self._expires_at = 0.0


@dataclass
class PayeeInput:
    """Identity and bank details sent to Payoneer when registering a payee."""

    legal_name: str
    entity_type: str
    email: str
    phone_number: str
    country: str
    address_line_1: str
    city: str
    postal_code: str
    account_holder_name: str
    bank_account_number: str
    address_line_2: Optional[str] = None
    state: Optional[str] = None
    bank_routing_number: Optional[str] = None
    bank_code: Optional[str] = None
    business_name: Optional[str] = None
    business_registration_number: Optional[str] = None


@dataclass
class PayeeStatus:
    payee_id: str
    status: str  # "active" | "pending" | "suspended" | "failed"
    verification_status: Optional[str]
    created_at: Optional[str]


@dataclass
class PayoutRequest:
    payee_id: str
    amount: Decimal
    currency: str
    reference: str
    description: Optional[str] = None


@dataclass
class PayoutResult:
    transaction_id: str
    status: str  # "pending" | "processing" | "completed" | "failed"
    amount: Decimal
    currency: str
    created_at: Optional[str]


class PayoneerClient:
    """Async client for the Payoneer payouts API."""

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        program_id: str,
        mock: bool = False,
        timeout: float = 30.0,
        token_cache: Optional[TokenCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Payoneer API base URL (sandbox or production)
            client_id: OAuth client id
            client_secret: OAuth client secret
            program_id: Payoneer program the payees are registered under
            mock: Return synthetic responses without network calls
            timeout: Per-request timeout in seconds
            token_cache: Token cache to use (a private one is created if omitted)
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.program_id = program_id
        self.mock = mock
        self.timeout = timeout
        self.token_cache = token_cache or TokenCache()
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "PayoneerClient":
        return cls(
            base_url=settings.PAYONEER_BASE_URL,
            client_id=settings.PAYONEER_CLIENT_ID,
            client_secret=settings.PAYONEER_CLIENT_SECRET,
            program_id=settings.PAYONEER_PROGRAM_ID,
            mock=settings.PAYONEER_MOCK,
            timeout=settings.PAYONEER_TIMEOUT_SECONDS,
        )

    def missing_credentials(self) -> List[str]:
        """Names of required credentials that are not configured."""
        required = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "program_id": self.program_id,
        }
        return [name for name, value in required.items() if not value]

    def validate_config(self) -> bool:
        """Check credentials. Raises in production when any are missing."""
        if self.mock:
            return True
        missing = self.missing_credentials()
        if missing and settings.ENVIRONMENT == "production":
            raise RuntimeError(
                f"Missing Payoneer config: {', '.join(missing)}. Please set environment variables."
            )
        if missing:
            logger.warning(f"Payoneer credentials missing: {', '.join(missing)}")
        return not missing

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            async with self._http() as client:
                response = await client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Payoneer {action} failed: {e}")
            raise PayoutProviderError(f"Failed to {action}: {e}") from e

        if response.status_code >= 400:
            try:
                error = response.json()
            except ValueError:
                error = {"message": response.text[:500]}
            if not isinstance(error, dict):
                error = {"message": str(error)}
            message = error.get("error_description") or error.get("message") or str(error)
            logger.error(f"Payoneer {action} failed: HTTP {response.status_code} - {message}")
            raise PayoutProviderError(f"Failed to {action}: {message}", provider_status=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(f"Payoneer {action} returned a non-object body: {response.text[:500]}")
            raise PayoutProviderError(f"Failed to {action}: malformed response", provider_status=response.status_code)
        return data

    @staticmethod
    def _field(data: Dict[str, Any], key: str, action: str) -> Any:
        """A required field of a provider response."""
        value = data.get(key)
        if value is None:
            logger.error(f"Payoneer {action} response is missing '{key}'")
            raise PayoutProviderError(f"Failed to {action}: response is missing '{key}'")
        return value

    async def get_access_token(self) -> str:
        """Return a cached OAuth token or fetch a new one."""
        if self.mock:
            return f"mock_token_{int(time.time())}"

        cached = self.token_cache.get()
        if cached:
            return cached

        data = await self._request(
            "POST",
            "/oauth/token",
            "get Payoneer token",
            json={
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        access_token = self._field(data, "access_token", "get Payoneer token")
        try:
            expires_in = float(data.get("expires_in", 3600))
        except (TypeError, ValueError):
            expires_in = 3600.0
        self.token_cache.set(access_token, expires_in)
        return access_token

    async def create_payee(self, payee: PayeeInput) -> str:
        """Register a payee and return its Payoneer id."""
        if self.mock:
            payee_id = f"payee_{secrets.token_hex(6)}"
            logger.info(f"[Payoneer Mock] Created payee {payee_id} for {payee.legal_name}")
            return payee_id

        token = await self.get_access_token()
        payload = {
            "program_id": self.program_id,
            "legal_name": payee.legal_name,
            "entity_type": payee.entity_type,
            "email": payee.email,
            "phone_number": payee.phone_number,
            "country": payee.country,
            "address_line_1": payee.address_line_1,
            "address_line_2": payee.address_line_2,
            "city": payee.city,
            "state": payee.state,
            "postal_code": payee.postal_code,
            "account_holder_name": payee.account_holder_name,
            "bank_account_number": payee.bank_account_number,
            "bank_routing_number": payee.bank_routing_number,
            "bank_code": payee.bank_code,
            "business_name": payee.business_name,
            "business_registration_number": payee.business_registration_number,
        }
        # Optional fields are omitted rather than sent as null
        payload = {key: value for key, value in payload.items() if value}

        data = await self._request("POST", "/api/payees", "create payee", json=payload, token=token)
        return self._field(data, "payee_id", "create payee")

    async def get_payee_status(self, payee_id: str) -> PayeeStatus:
        if self.mock:
            return PayeeStatus(
                payee_id=payee_id,
                status="active",
                verification_status="verified",
                created_at=datetime.utcnow().isoformat(),
            )

        token = await self.get_access_token()
        data = await self._request("GET", f"/api/payees/{payee_id}", "get payee status", token=token)
        return PayeeStatus(
            payee_id=self._field(data, "payee_id", "get payee status"),
            status=self._field(data, "status", "get payee status"),
            verification_status=data.get("verification_status"),
            created_at=data.get("created_at"),
        )

    async def create_payout(self, request: PayoutRequest) -> PayoutResult:
        """Send money to a payee."""
        if self.mock:
            transaction_id = f"txn_{secrets.token_hex(6)}"
            logger.info(
                f"[Payoneer Mock] Payout {transaction_id}: {request.amount} {request.currency} "
                f"to {request.payee_id} ({request.reference})"
            )
            return PayoutResult(
                transaction_id=transaction_id,
                status="completed",
                amount=request.amount,
                currency=request.currency,
                created_at=datetime.utcnow().isoformat(),
            )

        token = await self.get_access_token()
        payload = {
            "payee_id": request.payee_id,
            # Sent as a string so no float rounding happens on the wire
            "amount": str(request.amount),
            "currency": request.currency,
            "reference": request.reference,
            "description": request.description or "Royalty payout",
        }
        data = await self._request("POST", "/api/payouts", "create payout", json=payload, token=token)
        transaction_id = self._field(data, "transaction_id", "create payout")
        payout_status = self._field(data, "status", "create payout")
        try:
            amount = Decimal(str(self._field(data, "amount", "create payout")))
        except InvalidOperation as e:
            raise PayoutProviderError(f"Failed to create payout: invalid amount {data['amount']!r}") from e
        return PayoutResult(
            transaction_id=transaction_id,
            status=payout_status,
            amount=amount,
            currency=self._field(data, "currency", "create payout"),
            created_at=data.get("created_at"),
        )


_client: Optional[PayoneerClient] = None


def get_payoneer_client() -> PayoneerClient:
    """FastAPI dependency returning the process-wide client (and its token cache)."""
    global _client
    if _client is None:
        _client = PayoneerClient.from_settings()
    return _client

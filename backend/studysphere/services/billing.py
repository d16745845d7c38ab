# studysphere/services/billing.py
import logging
from typing import Any, Optional

import httpx

from ..core.config import Settings
from ..schemas.auth import AuthUser
from ..schemas.billing import AttachResponse, CustomerData, CustomerIdentity
from ..utils.errors import (
    ConfigurationError,
    ErrorCode,
    UpstreamError,
    ValidationError
)
from ..utils.http import read_payload

logger = logging.getLogger(__name__)


def identify(user: AuthUser) -> CustomerIdentity:
    """Billing customer for a signed-in user; the customer id is the user id."""
    return CustomerIdentity(
        customer_id=user.id,
        customer_data=CustomerData(name=user.display_name, email=user.email)
    )


class AutumnService:
    """Thin client for the Autumn billing API."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)

    def _headers(self) -> dict:
        if not self.settings.AUTUMN_SECRET_KEY:
            raise ConfigurationError("Autumn API key not configured",
                                     {"setting": "AUTUMN_SECRET_KEY"})
        return {
            "Authorization": f"Bearer {self.settings.AUTUMN_SECRET_KEY}",
            "Content-Type": "application/json"
        }

    def _url(self, path: str) -> str:
        return f"{self.settings.AUTUMN_API_URL.rstrip('/')}/{path.lstrip('/')}"

    async def attach(self, customer_id: Optional[str], product_id: Optional[str]) -> AttachResponse:
        customer_id = (customer_id or "").strip()
        product_id = (product_id or "").strip()
        if not customer_id:
            raise ValidationError(ErrorCode.MISSING_CUSTOMER_ID, "Customer ID is required")
        if not product_id:
            raise ValidationError(ErrorCode.MISSING_PRODUCT_ID, "Product ID is required")

        response = await self._client.post(
            self._url("attach"),
            headers=self._headers(),
            json={"customer_id": customer_id, "product_id": product_id}
        )
        result = await read_payload(response)

        if response.is_error:
            logger.error(f"Autumn API error ({response.status_code}): {result}")
            raise UpstreamError(
                ErrorCode.AUTUMN_API_ERROR,
                "Failed to attach product via Autumn API",
                response.status_code,
                result
            )

        logger.info(f"Attached product {product_id} to customer {customer_id}")
        return AttachResponse(customer_id=customer_id, product_id=product_id, result=result)

    async def forward(
            self,
            method: str,
            path: str,
            identity: CustomerIdentity,
            body: Optional[dict] = None
    ) -> tuple[int, Any]:
        """Proxy a call for ``identity``; returns upstream status and payload unchanged."""
        headers = self._headers()
        if method == "GET":
            response = await self._client.get(
                self._url(path),
                headers=headers,
                params={"customer_id": identity.customer_id}
            )
        else:
            payload = dict(body or {})
            payload["customer_id"] = identity.customer_id
            payload.setdefault("customer_data", identity.customer_data.model_dump(exclude_none=True))
            response = await self._client.request(method, self._url(path), headers=headers, json=payload)

        result = await read_payload(response)
        if response.is_error:
            logger.error(f"Autumn proxy {method} {path} failed ({response.status_code}): {result}")
        return response.status_code, result

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

# studysphere/api/billing.py
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..dependencies import get_autumn_service, require_user
from ..schemas.auth import AuthUser
from ..schemas.billing import AttachRequest, AttachResponse, Catalog
from ..services.billing import AutumnService, identify
from ..services.billing_catalog import CATALOG

router = APIRouter(prefix="/autumn")


@router.get("/catalog")
async def get_catalog() -> Catalog:
    return CATALOG


@router.post("/attach")
async def attach_product(
        body: AttachRequest,
        autumn: AutumnService = Depends(get_autumn_service)
) -> AttachResponse:
    return await autumn.attach(body.customer_id, body.product_id)


@router.api_route("/{path:path}", methods=["GET", "POST"])
async def proxy(
        path: str,
        request: Request,
        user: AuthUser = Depends(require_user),
        autumn: AutumnService = Depends(get_autumn_service)
) -> JSONResponse:
    """Forward a billing call on behalf of the signed-in customer."""
    body: Optional[dict] = None
    if request.method == "POST" and await request.body():
        body = await request.json()
    status_code, payload = await autumn.forward(request.method, path, identify(user), body)
    return JSONResponse(payload, status_code=status_code)

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import ORJSONResponse

from theme_probe.config import settings
from theme_probe.models import ProbeStatus, ShopContext
from theme_probe.probe import probe_shop
from theme_probe.schemas import CapabilityReportResponse, ProbeThemeRequest
from theme_probe.security import normalize_shop_domain, require_internal_api_token
from theme_probe.shopify_api import ShopifyApiClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _app_lifespan(_app: FastAPI) -> AsyncIterator[None]:
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    yield


app = FastAPI(
    title="Theme Capability Probe",
    default_response_class=ORJSONResponse,
    lifespan=_app_lifespan,
)
shopify_api = ShopifyApiClient()


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


@app.post(
    "/v1/themes/capabilities",
    response_model=CapabilityReportResponse,
    dependencies=[Depends(require_internal_api_token)],
)
async def probe_theme_capabilities(payload: ProbeThemeRequest):
    shop = ShopContext(
        shop_domain=normalize_shop_domain(payload.shopDomain),
        access_token=payload.accessToken.strip(),
    )
    result = await probe_shop(shop, targets=payload.targets, client=shopify_api)

    if result.issues:
        logger.info(
            "theme_probe.completed_with_issues",
            extra={"shop_domain": shop.shop_domain, "issue_count": len(result.issues)},
        )
    if result.status is ProbeStatus.FAILED:
        logger.error(
            "theme_probe.fatal",
            extra={"shop_domain": shop.shop_domain, "error": str(result.error)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(result.error) if result.error else "Theme probe failed",
        )
    if result.status is ProbeStatus.CANCELLED or result.report is None:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=str(result.error) if result.error else "Theme probe was cancelled",
        )

    body = CapabilityReportResponse.from_report(result.report)
    if result.status is ProbeStatus.NOT_FOUND:
        return ORJSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())
    return body

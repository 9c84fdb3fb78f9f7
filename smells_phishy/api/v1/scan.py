"""Scan endpoints: full two-layer analysis, URL-only checks and AI quota."""

from fastapi import APIRouter, Depends, Request, Response

from smells_phishy.config.logging import get_logger
from smells_phishy.core.metrics import pipeline_metrics
from smells_phishy.core.rate_limiter import RateLimitExceeded, RateLimitResult, get_rate_limiter
from smells_phishy.integrations.gemini import get_quota_status
from smells_phishy.orchestrator import ScanOrchestrator, get_orchestrator
from smells_phishy.schemas.scan import (
    QuotaStatus,
    ScanInput,
    ScanOutput,
    UrlCheckInput,
    UrlCheckOutput,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/scan", tags=["scan"])


def get_client_ip(request: Request) -> str:
    """Get client IP address from request."""
    # Check X-Forwarded-For header first (for load balancers)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return request.client.host if request.client else "unknown"


def rate_limit_headers(result: RateLimitResult) -> dict:
    return {
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }


async def enforce_rate_limit(request: Request, response: Response) -> RateLimitResult:
    """
    Charge one pipeline run to the caller.

    Called from the endpoint body so that requests failing validation are
    rejected with 422 before they use up any of the budget.
    """
    try:
        result = await get_rate_limiter().limit(get_client_ip(request))
    except RateLimitExceeded:
        pipeline_metrics.record_rate_limit_rejection(request.url.path)
        raise
    response.headers.update(rate_limit_headers(result))
    return result


@router.post("/analyze", response_model=ScanOutput)
async def analyze_text(
    scan_input: ScanInput,
    request: Request,
    response: Response,
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
):
    """
    Main analysis endpoint.

    Layer 1 checks URLs against threat intelligence databases; if nothing is
    flagged, Layer 2 analyzes the content with Gemini.
    """
    await enforce_rate_limit(request, response)
    return await orchestrator.analyze_text(scan_input)


@router.post("/check-urls", response_model=UrlCheckOutput)
async def check_urls(
    body: UrlCheckInput,
    request: Request,
    response: Response,
    orchestrator: ScanOrchestrator = Depends(get_orchestrator),
):
    """Quick URL check - only runs Layer 1."""
    await enforce_rate_limit(request, response)
    return await orchestrator.check_urls(body.urls)


@router.get("/quota", response_model=QuotaStatus)
async def quota():
    """Remaining AI analysis capacity."""
    return QuotaStatus(**get_quota_status())

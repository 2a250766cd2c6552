"""
Explain API endpoint for the browser widget.
Web API controller - delegates every decision to the ExplanationGateway.
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from ..shared.core.dependencies import GatewayDep, IdentityDep, build_request_metadata
from ..shared.models.internal import ExplainStatus
from ..shared.models.requests import ExplainRequest
from ..shared.models.responses import ExplainResponse, ErrorResponse


router = APIRouter(
    tags=["explain"]
)

STATUS_CODES = {
    ExplainStatus.OK: status.HTTP_200_OK,
    ExplainStatus.INVALID_REQUEST: status.HTTP_400_BAD_REQUEST,
    ExplainStatus.REJECTED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ExplainStatus.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ExplainStatus.DISABLED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ExplainStatus.NOT_CONFIGURED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ExplainStatus.FAILED: status.HTTP_502_BAD_GATEWAY,
}


@router.post(
    "/explain",
    response_model=ExplainResponse,
    responses={
        400: {"model": ExplainResponse},
        422: {"model": ExplainResponse},
        429: {"model": ExplainResponse},
        500: {"model": ErrorResponse},
        502: {"model": ExplainResponse},
        503: {"model": ExplainResponse},
    }
)
async def explain(
    body: ExplainRequest,
    http_request: Request,
    gateway: GatewayDep,
    identity: IdentityDep
):
    """
    Explain a text selection.

    The HTTP status follows the outcome; the JSON body always carries
    ``status`` and, on failure, a message safe to show to the user.
    """
    request_meta = build_request_metadata(http_request, body.client_id, body.timestamp)

    try:
        result = await gateway.explain(body.text, body.context, identity, request_meta)
    except Exception as e:
        logger.exception(f"Unexpected error explaining selection: {type(e).__name__}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(error="Internal server error").model_dump()
        )

    response = ExplainResponse(**result.model_dump())
    return JSONResponse(
        status_code=STATUS_CODES[result.status],
        content=response.model_dump(mode="json", exclude_none=True)
    )

"""Generation API relay endpoints.

Lets browser clients reach the upstream generations collection without
holding its key. Status codes and bodies are passed through unchanged; only
an unreachable upstream produces a relay-authored error.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse

from moodreel.controllers.dependencies import RelayDep
from moodreel.services.relay import RelayError, RelayResponse
from moodreel.views.common import RelayErrorResponse

router = APIRouter(
    prefix="/api/luma",
    tags=["relay"],
    responses={500: {"model": RelayErrorResponse}},
)

logger = logging.getLogger(__name__)


def _to_response(relayed: RelayResponse) -> Response:
    return Response(
        content=relayed.content,
        status_code=relayed.status_code,
        media_type=relayed.media_type,
    )


def _error_response(exc: RelayError) -> JSONResponse:
    logger.warning("Relay upstream unreachable code=%s: %s", exc.code, exc)
    body = RelayErrorResponse(message=str(exc), code=exc.code)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(),
    )


async def _forward(relay, method: str, *, job_id: Optional[str] = None, body: Optional[bytes] = None) -> Response:
    try:
        relayed = await relay.forward(method, job_id=job_id, body=body)
    except RelayError as exc:
        return _error_response(exc)
    return _to_response(relayed)


@router.post("")
async def create_generation(request: Request, relay: RelayDep) -> Response:
    """Forward a generation request with the server-side credential attached."""

    return await _forward(relay, "POST", body=await request.body())


@router.get("/{generation_id}")
async def get_generation(generation_id: str, relay: RelayDep) -> Response:
    """Forward a status query for one generation."""

    return await _forward(relay, "GET", job_id=generation_id)

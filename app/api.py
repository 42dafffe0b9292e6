"""HTTP route definitions for the credential intake endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.gateway import Gateway, build_default_gateway

logger = logging.getLogger(__name__)

CREDENTIAL_RECEIVED = "Credential received\n"
METHOD_NOT_SUPPORTED = "Method not supported\n"

router = APIRouter()


def get_gateway() -> Gateway:
    return build_default_gateway()


@router.post(
    "/{path:path}",
    response_class=PlainTextResponse,
    summary="Submit a Google identity token for sign-in.",
)
async def receive_credential(
    request: Request,
    path: str,
    gateway: Gateway = Depends(get_gateway),
) -> PlainTextResponse:
    logger.info("POST request", extra={"method": request.method, "path": f"/{path}"})
    body = await request.body()
    gateway.credentials.submit(body.decode("utf-8", errors="replace"))
    return PlainTextResponse(CREDENTIAL_RECEIVED, status_code=status.HTTP_200_OK)


async def method_not_allowed_handler(
    request: Request, _exc: StarletteHTTPException
) -> PlainTextResponse:
    logger.info(
        "Unsupported HTTP request: %s", request.method, extra={"method": request.method}
    )
    return PlainTextResponse(
        METHOD_NOT_SUPPORTED,
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        headers={"Allow": "POST"},
    )

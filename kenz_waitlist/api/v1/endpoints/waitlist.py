import json
import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from kenz_waitlist.core.exceptions import BaseAppException
from kenz_waitlist.schemas.waitlist import ErrorResponse, WaitlistResponse
from kenz_waitlist.services.ledger import LedgerStore, get_ledger
from kenz_waitlist.services.waitlist_service import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/public", tags=["public"])


def get_waitlist_service(ledger: LedgerStore = Depends(get_ledger)) -> WaitlistService:
    return WaitlistService(ledger)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(ErrorResponse(message=message).model_dump(), status_code=status_code)


@router.post(
    "/waitlist",
    response_model=WaitlistResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def join_waitlist(request: Request, service: WaitlistService = Depends(get_waitlist_service)):
    """Add an email to the waitlist.

    Body: `{"email": "...", "source": "..."}`. Submitting an address that is
    already listed succeeds with `alreadyExists: true` and writes nothing.
    """
    raw = await request.body()
    try:
        payload = json.loads(raw) if raw else None
    except (UnicodeDecodeError, ValueError):
        payload = None

    try:
        result = await run_in_threadpool(
            service.join,
            payload,
            forwarded_for=request.headers.get("x-forwarded-for"),
            peer=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except BaseAppException as e:
        if e.details:
            logger.info(f"Waitlist submission failed: {e.message} ({e.details})")
        return _error(e.status_code, e.message)
    return result


@router.options("/waitlist", include_in_schema=False)
async def waitlist_preflight():
    return Response(status_code=200)

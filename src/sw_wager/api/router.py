"""sw_wager REST API: open, list, inspect, join, close and resolve wagers."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_common.database import get_db_session
from src.sw_common.response import ApiResponse, success_response
from src.sw_gateway.auth.dependencies import require_service_token
from src.sw_wager.application.schemas import (
    JoinWagerRequest,
    OpenWagerRequest,
    ResolveWagerRequest,
)
from src.sw_wager.application.service import WagerApplicationService

router = APIRouter(
    prefix="/wagers",
    tags=["wagers"],
    dependencies=[Depends(require_service_token)],
)

_service = WagerApplicationService()


@router.post("", status_code=201)
async def open_wager(
    body: OpenWagerRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.open_wager(db, body)
    return success_response(data.model_dump(mode="json"), request)


@router.get("")
async def list_wagers(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    status: Literal["open"] = Query("open", description="Only open wagers can be listed"),
    limit: int = Query(10, ge=1, le=50, description="Max items, newest first"),
) -> ApiResponse:
    data = await _service.list_active_wagers(db, limit)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/{wager_id}")
async def get_wager(
    wager_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_wager(db, wager_id)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{wager_id}/join")
async def join_wager(
    wager_id: str,
    body: JoinWagerRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.join_wager(db, wager_id, body.user_id, body.side, body.amount)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{wager_id}/close")
async def close_wager(
    wager_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.close_wager(db, wager_id)
    return success_response(data.model_dump(mode="json"), request)


@router.post("/{wager_id}/resolve")
async def resolve_wager(
    wager_id: str,
    body: ResolveWagerRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.resolve_wager(db, wager_id, body.caller_id, body.outcome)
    return success_response(data.model_dump(mode="json"), request)

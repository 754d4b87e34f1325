"""Admin REST API."""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_admin.application.service import AdminService
from src.sw_common.database import get_db_session
from src.sw_common.response import ApiResponse, success_response
from src.sw_gateway.auth.dependencies import require_service_token
from src.sw_settlement.application.schemas import SettleWagerRequest

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_service_token)],
)
_service = AdminService()


@router.post("/wagers/{wager_id}/settle")
async def settle_wager(
    wager_id: str,
    body: SettleWagerRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.settle_wager(db, wager_id, body.outcome)
    return success_response(result.model_dump(mode="json"), request)


@router.post("/settlement/sweep")
async def run_sweep(request: Request) -> ApiResponse:
    result = await _service.run_sweep()
    return success_response(result.model_dump(), request)


@router.get("/reconcile")
async def reconcile(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    result = await _service.reconcile(db)
    return success_response(result.model_dump(), request)

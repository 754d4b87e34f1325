"""sw_account REST API: balances and ledger history, service-token protected."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.sw_account.application.schemas import BalanceChangeRequest
from src.sw_account.application.service import AccountApplicationService
from src.sw_common.database import get_db_session
from src.sw_common.response import ApiResponse, success_response
from src.sw_gateway.auth.dependencies import require_service_token

router = APIRouter(
    prefix="/balances",
    tags=["balances"],
    dependencies=[Depends(require_service_token)],
)

_service = AccountApplicationService()


@router.get("/{user_id}")
async def get_balance(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.get_balance(db, user_id)
    return success_response(data.model_dump(), request)


@router.post("/{user_id}/credit")
async def credit(
    user_id: str,
    body: BalanceChangeRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.credit(
        db, user_id, body.amount, body.reference_type, body.reference_id, body.description
    )
    return success_response(data.model_dump(), request)


@router.post("/{user_id}/debit")
async def debit(
    user_id: str,
    body: BalanceChangeRequest,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.debit(
        db, user_id, body.amount, body.reference_type, body.reference_id, body.description
    )
    return success_response(data.model_dump(), request)


@router.get("/{user_id}/ledger")
async def list_ledger(
    user_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    cursor: str | None = Query(None, description="Pagination cursor (opaque Base64)"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    entry_type: str | None = Query(None, description="Filter by LedgerEntryType"),
) -> ApiResponse:
    data = await _service.list_ledger(db, user_id, cursor, limit, entry_type)
    return success_response(data.model_dump(), request)

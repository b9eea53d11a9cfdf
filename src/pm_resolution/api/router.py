"""Resolution read endpoints for authenticated users.

GET /markets/{market_id}/resolution  — resolution record with winner payouts
GET /account/payouts                 — winnings and creator fees received
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import Identity, get_current_identity
from src.pm_resolution.application.service import ResolutionEngine

router = APIRouter(tags=["resolution"])

_engine = ResolutionEngine()


@router.get("/markets/{market_id}/resolution")
async def get_resolution(
    market_id: str,
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _engine.get_resolution(db, market_id)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/account/payouts")
async def list_my_payouts(
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    data = await _engine.list_user_payouts(db, identity.user_id, limit)
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

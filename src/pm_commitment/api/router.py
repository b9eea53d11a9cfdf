"""pm_commitment REST endpoints.

POST /commitments   — stake tokens on a market option
GET  /commitments   — caller's commitments, newest first
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_commitment.application.schemas import CommitTokensRequest
from src.pm_commitment.application.service import CommitmentService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import Identity, get_current_identity

router = APIRouter(prefix="/commitments", tags=["commitments"])

_service = CommitmentService()


@router.post("", status_code=201)
async def commit_tokens(
    body: CommitTokensRequest,
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.commit_tokens(
        db, identity.user_id, body.market_id, body.option_id, body.tokens
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("")
async def list_commitments(
    request: Request,
    identity: Annotated[Identity, Depends(get_current_identity)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    market_id: str | None = Query(None, description="Filter by market"),
    status: str | None = Query(None, description="Filter by CommitmentStatus"),
    limit: int = Query(20, ge=1, le=100),
    cursor: str | None = Query(None, description="Last commitment id of previous page"),
) -> ApiResponse:
    data = await _service.list_my_commitments(
        db, identity.user_id, market_id, status, cursor, limit
    )
    resp = success_response(data.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp

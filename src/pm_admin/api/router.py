# src/pm_admin/api/router.py
"""Admin REST API. Every endpoint requires a token carrying the is_admin claim."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import IssueTokensRequest
from src.pm_account.application.service import AccountApplicationService
from src.pm_admin.application.service import AdminService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import Identity, require_admin
from src.pm_market.application.schemas import CreateMarketRequest, UpdateCreatorFeeRequest
from src.pm_market.application.service import MarketApplicationService
from src.pm_resolution.application.schemas import CancelMarketRequest, ResolveMarketRequest
from src.pm_resolution.application.service import ResolutionEngine

router = APIRouter(prefix="/admin", tags=["admin"])

_service = AdminService()
_markets = MarketApplicationService()
_accounts = AccountApplicationService()
_engine = ResolutionEngine()


def _respond(request: Request, data: object) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/markets", status_code=201)
async def create_market(
    body: CreateMarketRequest,
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _markets.create_market(db, body, admin.user_id)
    return _respond(request, result.model_dump())


@router.post("/markets/{market_id}/resolve")
async def resolve_market(
    market_id: str,
    body: ResolveMarketRequest,
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _engine.resolve(
        db,
        market_id,
        body.winning_option_id,
        [e.to_domain() for e in body.evidence],
        admin.user_id,
        body.creator_fee_percentage,
    )
    return _respond(request, result.model_dump())


@router.post("/markets/{market_id}/cancel")
async def cancel_market(
    market_id: str,
    body: CancelMarketRequest,
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _engine.cancel(
        db, market_id, body.reason, admin.user_id, refund_tokens=body.refund_tokens
    )
    return _respond(request, result.model_dump())


@router.get("/markets/{market_id}/payout-preview")
async def payout_preview(
    market_id: str,
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    winning_option_id: str = Query(..., min_length=1),
    creator_fee_percentage: float | None = Query(None),
) -> ApiResponse:
    result = await _engine.preview_payouts(
        db, market_id, winning_option_id, creator_fee_percentage
    )
    return _respond(request, result.model_dump())


@router.post("/markets/{market_id}/creator-fee")
async def update_creator_fee(
    market_id: str,
    body: UpdateCreatorFeeRequest,
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _markets.update_creator_fee(
        db, market_id, body.fee_percentage, admin.user_id
    )
    return _respond(request, result.model_dump())


@router.get("/markets/{market_id}/resolution-logs")
async def resolution_logs(
    market_id: str,
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _engine.list_resolution_logs(db, market_id)
    return _respond(request, result.model_dump())


@router.post("/tokens/issue")
async def issue_tokens(
    body: IssueTokensRequest,
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _accounts.issue_tokens(db, body.user_id, body.amount, admin.user_id)
    return _respond(request, result.model_dump())


@router.get("/invariants")
async def check_invariants(
    request: Request,
    admin: Annotated[Identity, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.check_invariants(db)
    return _respond(request, result)

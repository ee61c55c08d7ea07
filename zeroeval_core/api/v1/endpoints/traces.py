import logging

from fastapi import APIRouter, Depends
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_current_api_key,
)
from zeroeval_core.api.v1.helpers.responses import not_found_response
from zeroeval_core.db.session import get_db
from zeroeval_core.models.pydantic_models.traces import (
    SessionResponseModel,
    SpanResponseModel,
    TraceSpansResponseModel,
)
from zeroeval_core.models.traces import SessionModel, SpanModel, TraceModel

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/traces/{trace_id}", response_model=TraceSpansResponseModel)
async def get_trace(
    trace_id: str,
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(TraceModel).where(
            and_(
                TraceModel.trace_id == trace_id,
                TraceModel.workspace_id == current_key.workspace_id,
            )
        )
    )
    trace_obj = result.scalar_one_or_none()
    if not trace_obj:
        raise not_found_response(f"Trace with ID {trace_id} not found or not accessible.")

    span_result = await db.execute(
        select(SpanModel)
        .where(SpanModel.trace_id == trace_id)
        .order_by(SpanModel.start_time_unix_nano.asc())
    )
    spans = [SpanResponseModel.from_orm_obj(obj) for obj in span_result.scalars().all()]

    return TraceSpansResponseModel(
        trace_id=trace_obj.trace_id,
        session_id=trace_obj.session_id,
        tags=trace_obj.tags or {},
        spans=spans,
        span_count=len(spans),
    )


@router.get("/sessions/{session_id}", response_model=SessionResponseModel)
async def get_session(
    session_id: str,
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(SessionModel).where(
            and_(
                SessionModel.session_id == session_id,
                SessionModel.workspace_id == current_key.workspace_id,
            )
        )
    )
    session_obj = result.scalar_one_or_none()
    if not session_obj:
        raise not_found_response(
            f"Session with ID {session_id} not found or not accessible."
        )

    trace_result = await db.execute(
        select(TraceModel.trace_id)
        .where(TraceModel.session_id == session_id)
        .order_by(TraceModel.start_time_unix_nano.asc())
    )

    return SessionResponseModel(
        session_id=session_obj.session_id,
        name=session_obj.name,
        tags=session_obj.tags or {},
        trace_ids=list(trace_result.scalars().all()),
    )

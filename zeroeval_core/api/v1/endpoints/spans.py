import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_current_api_key,
)
from zeroeval_core.api.v1.helpers.responses import (
    forbidden_response,
    validation_error_response,
)
from zeroeval_core.config import settings
from zeroeval_core.db.session import get_db
from zeroeval_core.models.pydantic_models.traces import (
    SpanIngestModel,
    SpanIngestResponseModel,
)
from zeroeval_core.models.signals import Signal
from zeroeval_core.models.traces import SessionModel, SpanModel, TraceModel
from zeroeval_core.utils import encode_signal_value, iso_to_nano, signal_type_for

logger = logging.getLogger(__name__)
router = APIRouter()


def _check_owner(obj, workspace_id, kind: str, entity_id: str) -> None:
    if obj.workspace_id != workspace_id:
        raise forbidden_response(f"{kind} {entity_id} belongs to another workspace")


async def _upsert_sessions(
    db: AsyncSession, workspace_id, spans: list[SpanIngestModel]
) -> None:
    wanted: dict[str, SpanIngestModel] = {}
    for span in spans:
        if span.session_id:
            wanted.setdefault(span.session_id, span)

    if not wanted:
        return

    result = await db.execute(
        select(SessionModel).where(SessionModel.session_id.in_(list(wanted)))
    )
    existing = {obj.session_id: obj for obj in result.scalars().all()}

    for session_id in wanted:
        session_obj = existing.get(session_id)
        if session_obj is None:
            session_obj = SessionModel(
                session_id=session_id, workspace_id=workspace_id, tags={}
            )
            db.add(session_obj)
        else:
            _check_owner(session_obj, workspace_id, "Session", session_id)

        tags = dict(session_obj.tags or {})
        for span in spans:
            if span.session_id != session_id:
                continue
            if span.session_name:
                session_obj.name = span.session_name
            tags.update(span.session_tags)
        session_obj.tags = tags

    await db.flush()


async def _upsert_traces(
    db: AsyncSession, workspace_id, spans: list[SpanIngestModel]
) -> int:
    by_trace: dict[str, list[SpanIngestModel]] = {}
    for span in spans:
        by_trace.setdefault(span.trace_id, []).append(span)

    result = await db.execute(
        select(TraceModel).where(TraceModel.trace_id.in_(list(by_trace)))
    )
    existing = {obj.trace_id: obj for obj in result.scalars().all()}

    for trace_id, trace_spans in by_trace.items():
        trace_obj = existing.get(trace_id)
        if trace_obj is None:
            trace_obj = TraceModel(trace_id=trace_id, workspace_id=workspace_id, tags={})
            db.add(trace_obj)
        else:
            _check_owner(trace_obj, workspace_id, "Trace", trace_id)

        tags = dict(trace_obj.tags or {})
        for span in trace_spans:
            tags.update(span.trace_tags)
            if span.session_id and not trace_obj.session_id:
                trace_obj.session_id = span.session_id
            if span.parent_id is None:
                trace_obj.root_span_id = span.span_id
                trace_obj.name = span.name

            start = iso_to_nano(span.start_time)
            end = iso_to_nano(span.end_time)
            if start is not None and (
                trace_obj.start_time_unix_nano is None
                or start < trace_obj.start_time_unix_nano
            ):
                trace_obj.start_time_unix_nano = start
            if end is not None and (
                trace_obj.end_time_unix_nano is None
                or end > trace_obj.end_time_unix_nano
            ):
                trace_obj.end_time_unix_nano = end
        trace_obj.tags = tags

    await db.flush()
    return len(by_trace)


def _apply_span(span_obj: SpanModel, span: SpanIngestModel) -> None:
    span_obj.trace_id = span.trace_id
    span_obj.parent_span_id = span.parent_id
    span_obj.session_id = span.session_id
    span_obj.name = span.name
    span_obj.kind = span.kind
    span_obj.start_time_unix_nano = iso_to_nano(span.start_time)
    span_obj.end_time_unix_nano = iso_to_nano(span.end_time)
    span_obj.duration_ms = span.duration_ms
    span_obj.input = span.input_data
    span_obj.output = span.output_data
    span_obj.attributes = span.attributes
    span_obj.tags = span.tags
    span_obj.status = span.status
    span_obj.error_code = span.error_code
    span_obj.error_message = span.error_message
    span_obj.error_stack = span.error_stack
    span_obj.code_filepath = span.code_filepath
    span_obj.code_lineno = span.code_lineno


def _span_signals(workspace_id, span: SpanIngestModel) -> list[Signal]:
    targets = [("span", span.span_id, span.signals), ("trace", span.trace_id, span.trace_signals)]
    if span.session_id:
        targets.append(("session", span.session_id, span.session_signals))

    signals = []
    for entity_type, entity_id, values in targets:
        for name, value in values.items():
            signals.append(
                Signal(
                    workspace_id=workspace_id,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    name=name,
                    value=encode_signal_value(value),
                    signal_type=signal_type_for(value),
                )
            )
    return signals


@router.post("", response_model=SpanIngestResponseModel)
async def ingest_spans(
    spans: list[SpanIngestModel] = Body(...),
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
    db: AsyncSession = Depends(get_db),
):
    """
    Receive a batch of spans from the SDK.

    Sessions and traces referenced by the spans are created on first sight
    and updated afterwards (tags merged, time bounds widened). Spans that
    were already ingested are replaced. Signals carried on the spans are
    stored against the span, its trace and its session.
    """
    if len(spans) > settings.max_spans_per_request:
        raise validation_error_response(
            [f"At most {settings.max_spans_per_request} spans per request"]
        )

    workspace_id = current_key.workspace_id
    if not spans:
        return SpanIngestResponseModel(ingested=0, traces=0, signals=0)

    await _upsert_sessions(db, workspace_id, spans)
    trace_count = await _upsert_traces(db, workspace_id, spans)

    result = await db.execute(
        select(SpanModel).where(SpanModel.span_id.in_([span.span_id for span in spans]))
    )
    existing = {obj.span_id: obj for obj in result.scalars().all()}

    signal_count = 0
    for span in spans:
        span_obj = existing.get(span.span_id)
        if span_obj is None:
            span_obj = SpanModel(span_id=span.span_id, workspace_id=workspace_id)
            db.add(span_obj)
            existing[span.span_id] = span_obj
        else:
            _check_owner(span_obj, workspace_id, "Span", span.span_id)
        _apply_span(span_obj, span)

        signals = _span_signals(workspace_id, span)
        db.add_all(signals)
        signal_count += len(signals)

    await db.commit()

    logger.info(
        "Ingested %d spans across %d traces for workspace %s",
        len(spans),
        trace_count,
        workspace_id,
    )
    return SpanIngestResponseModel(
        ingested=len(spans), traces=trace_count, signals=signal_count
    )

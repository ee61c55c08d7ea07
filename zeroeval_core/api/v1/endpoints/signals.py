"""
Signals API.

``/workspaces/{workspace_id}/signals`` attaches named feedback values to a
completion, span, trace or session. One row is stored per id given on the
request, and repeated posts append.

``/workspaces/{workspace_id}/tests/signals`` is keyed on
(completion_id, name): posting the same pair again overwrites the value.
"""

import logging
from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_workspace_api_key,
)
from zeroeval_core.db.session import get_db
from zeroeval_core.models.pydantic_models.signals import (
    BulkSignalCreate,
    SignalCreate,
    SignalResponseModel,
    TestSignalCreate,
    TestSignalResponseModel,
)
from zeroeval_core.models.signals import Signal, TestSignal
from zeroeval_core.utils import (
    decode_signal_value,
    encode_signal_value,
    signal_type_for,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _build_signals(workspace_id: UUID, body: SignalCreate) -> list[Signal]:
    return [
        Signal(
            workspace_id=workspace_id,
            entity_type=entity_type,
            entity_id=entity_id,
            name=body.name,
            value=encode_signal_value(body.value),
            signal_type=signal_type_for(body.value),
        )
        for entity_type, entity_id in body.entity_targets()
    ]


def _to_response(signal: Signal) -> SignalResponseModel:
    return SignalResponseModel(
        signal_id=signal.signal_id,
        entity_type=signal.entity_type,
        entity_id=signal.entity_id,
        name=signal.name,
        value=decode_signal_value(signal.value, signal.signal_type),
        signal_type=signal.signal_type,
        created_at=signal.created_at,
    )


async def _store(db: AsyncSession, signals: list[Signal]) -> list[SignalResponseModel]:
    db.add_all(signals)
    await db.commit()
    for signal in signals:
        await db.refresh(signal)
    return [_to_response(signal) for signal in signals]


@router.post(
    "/{workspace_id}/signals",
    response_model=list[SignalResponseModel],
    status_code=status.HTTP_201_CREATED,
)
async def create_signal(
    workspace_id: UUID,
    body: SignalCreate,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    signals = _build_signals(workspace_id, body)
    logger.info(
        "Storing signal %s for %d entities in workspace %s",
        body.name,
        len(signals),
        workspace_id,
    )
    return await _store(db, signals)


@router.post(
    "/{workspace_id}/signals/bulk",
    response_model=list[SignalResponseModel],
    status_code=status.HTTP_201_CREATED,
)
async def create_signals_bulk(
    workspace_id: UUID,
    body: BulkSignalCreate,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    signals: list[Signal] = []
    for item in body.signals:
        signals.extend(_build_signals(workspace_id, item))
    return await _store(db, signals)


@router.get("/{workspace_id}/signals", response_model=list[SignalResponseModel])
async def list_signals(
    workspace_id: UUID,
    entity_type: Literal["completion", "span", "trace", "session"] | None = Query(None),
    entity_id: str | None = Query(None),
    name: str | None = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    conditions = [Signal.workspace_id == workspace_id]
    if entity_type:
        conditions.append(Signal.entity_type == entity_type)
    if entity_id:
        conditions.append(Signal.entity_id == entity_id)
    if name:
        conditions.append(Signal.name == name)

    result = await db.execute(
        select(Signal)
        .where(and_(*conditions))
        .order_by(Signal.created_at.desc())
        .limit(limit)
    )
    return [_to_response(signal) for signal in result.scalars().all()]


async def _find_test_signal(
    db: AsyncSession, workspace_id: UUID, completion_id: str, name: str
) -> TestSignal | None:
    result = await db.execute(
        select(TestSignal).where(
            and_(
                TestSignal.workspace_id == workspace_id,
                TestSignal.completion_id == completion_id,
                TestSignal.name == name,
            )
        )
    )
    return result.scalar_one_or_none()


@router.post("/{workspace_id}/tests/signals", response_model=TestSignalResponseModel)
async def upsert_test_signal(
    workspace_id: UUID,
    body: TestSignalCreate,
    response: Response,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    value = encode_signal_value(body.value)
    signal_type = signal_type_for(body.value)

    test_signal = await _find_test_signal(db, workspace_id, body.completion_id, body.name)
    created = test_signal is None
    if created:
        db.add(
            TestSignal(
                workspace_id=workspace_id,
                completion_id=body.completion_id,
                name=body.name,
                value=value,
                signal_type=signal_type,
            )
        )
        try:
            await db.commit()
        except IntegrityError:
            # a concurrent request inserted the same (completion_id, name)
            await db.rollback()
            created = False
            test_signal = await _find_test_signal(
                db, workspace_id, body.completion_id, body.name
            )

    if not created:
        test_signal.value = value
        test_signal.signal_type = signal_type
        await db.commit()

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    logger.info(
        "%s test signal %s for completion %s",
        "Created" if created else "Overwrote",
        body.name,
        body.completion_id,
    )
    return TestSignalResponseModel(
        completion_id=body.completion_id,
        name=body.name,
        value=body.value,
        signal_type=signal_type,
        created=created,
    )

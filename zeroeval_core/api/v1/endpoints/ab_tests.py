"""
A/B test management for the proxy.

A test is addressed by its TEST_ID (``zeroeval/<TEST_ID>`` on the proxy) and
splits traffic across weighted variants. Results aggregate the completions
served for each variant together with the signals attached to them.
"""

import logging
from collections import defaultdict
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_workspace_api_key,
)
from zeroeval_core.api.v1.helpers.responses import (
    conflict_response,
    not_found_response,
)
from zeroeval_core.core.completions import get_test_by_slug
from zeroeval_core.core.results import summarize_signal_values
from zeroeval_core.db.session import get_db
from zeroeval_core.models.ab_tests import ABTest, Completion, Variant
from zeroeval_core.models.pydantic_models.ab_tests import (
    ABTestCreate,
    ABTestModel,
    ABTestResultsModel,
    ABTestUpdate,
    SignalSummaryModel,
    VariantResultModel,
)
from zeroeval_core.models.signals import Signal, TestSignal

logger = logging.getLogger(__name__)
router = APIRouter()


async def _get_test_or_404(db: AsyncSession, workspace_id: UUID, test_id: str) -> ABTest:
    ab_test = await get_test_by_slug(db, workspace_id, test_id)
    if ab_test is None:
        raise not_found_response(f"A/B test '{test_id}' not found")
    return ab_test


@router.post(
    "/{workspace_id}/tests",
    response_model=ABTestModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_ab_test(
    workspace_id: UUID,
    body: ABTestCreate,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    if await get_test_by_slug(db, workspace_id, body.test_id) is not None:
        raise conflict_response(f"A/B test '{body.test_id}' already exists")

    ab_test = ABTest(
        workspace_id=workspace_id,
        slug=body.test_id,
        name=body.name,
        description=body.description,
        status=body.status,
        variants=[
            Variant(
                name=variant.name,
                model=variant.model,
                weight=variant.weight,
                params=variant.params,
                position=position,
            )
            for position, variant in enumerate(body.variants)
        ],
    )
    db.add(ab_test)
    await db.commit()
    ab_test = await get_test_by_slug(db, workspace_id, body.test_id)

    logger.info(
        "Created A/B test %s with %d variants in workspace %s",
        body.test_id,
        len(body.variants),
        workspace_id,
    )
    return ABTestModel.model_validate(ab_test)


@router.get("/{workspace_id}/tests", response_model=list[ABTestModel])
async def list_ab_tests(
    workspace_id: UUID,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ABTest)
        .where(ABTest.workspace_id == workspace_id)
        .order_by(ABTest.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return [ABTestModel.model_validate(obj) for obj in result.scalars().all()]


@router.get("/{workspace_id}/tests/{test_id}", response_model=ABTestModel)
async def get_ab_test(
    workspace_id: UUID,
    test_id: str,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    return ABTestModel.model_validate(await _get_test_or_404(db, workspace_id, test_id))


@router.patch("/{workspace_id}/tests/{test_id}", response_model=ABTestModel)
async def update_ab_test(
    workspace_id: UUID,
    test_id: str,
    body: ABTestUpdate,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    ab_test = await _get_test_or_404(db, workspace_id, test_id)
    ab_test.status = body.status
    await db.commit()
    ab_test = await _get_test_or_404(db, workspace_id, test_id)

    logger.info("A/B test %s is now %s", test_id, body.status)
    return ABTestModel.model_validate(ab_test)


@router.get("/{workspace_id}/tests/{test_id}/results", response_model=ABTestResultsModel)
async def get_ab_test_results(
    workspace_id: UUID,
    test_id: str,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    """
    Per-variant completion counts and signal summaries.

    Signals come from both the tests/signals endpoint and completion-level
    signals on the general signals endpoint.
    """
    ab_test = await _get_test_or_404(db, workspace_id, test_id)

    completion_result = await db.execute(
        select(Completion.completion_id, Completion.variant_id, Completion.status).where(
            Completion.ab_test_id == ab_test.ab_test_id
        )
    )
    completions = completion_result.all()
    variant_by_completion = {row.completion_id: row.variant_id for row in completions}

    values: dict[UUID, dict[str, list[tuple[str, str]]]] = defaultdict(
        lambda: defaultdict(list)
    )
    if variant_by_completion:
        completion_ids = list(variant_by_completion)
        test_signal_rows = await db.execute(
            select(
                TestSignal.completion_id,
                TestSignal.name,
                TestSignal.value,
                TestSignal.signal_type,
            ).where(
                and_(
                    TestSignal.workspace_id == workspace_id,
                    TestSignal.completion_id.in_(completion_ids),
                )
            )
        )
        signal_rows = await db.execute(
            select(
                Signal.entity_id, Signal.name, Signal.value, Signal.signal_type
            ).where(
                and_(
                    Signal.workspace_id == workspace_id,
                    Signal.entity_type == "completion",
                    Signal.entity_id.in_(completion_ids),
                )
            )
        )
        for completion_id, name, value, signal_type in [
            *test_signal_rows.all(),
            *signal_rows.all(),
        ]:
            variant_id = variant_by_completion[completion_id]
            values[variant_id][name].append((value, signal_type))

    variants = []
    for variant in ab_test.variants:
        served = [row for row in completions if row.variant_id == variant.variant_id]
        variants.append(
            VariantResultModel(
                variant_id=variant.variant_id,
                name=variant.name,
                model=variant.model,
                completions=sum(1 for row in served if row.status == "succeeded"),
                failed_completions=sum(1 for row in served if row.status == "failed"),
                signals={
                    name: SignalSummaryModel(**summarize_signal_values(signal_values))
                    for name, signal_values in values[variant.variant_id].items()
                },
            )
        )

    return ABTestResultsModel(
        test_id=ab_test.slug,
        status=ab_test.status,
        total_completions=len(completions),
        variants=variants,
    )

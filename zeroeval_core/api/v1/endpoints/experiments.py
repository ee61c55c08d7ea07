import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from zeroeval_core.api.v1.endpoints.datasets import (
    get_dataset_by_name,
    get_dataset_version,
)
from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_workspace_api_key,
)
from zeroeval_core.api.v1.helpers.responses import not_found_response
from zeroeval_core.core.results import summarize_scores
from zeroeval_core.db.session import get_db
from zeroeval_core.models.datasets import Experiment, ExperimentResult
from zeroeval_core.models.pydantic_models.datasets import (
    ExperimentCreate,
    ExperimentModel,
    ExperimentResultModel,
)

logger = logging.getLogger(__name__)
router = APIRouter()


async def _load_experiment(
    db: AsyncSession, workspace_id: UUID, experiment_id: UUID
) -> Experiment | None:
    result = await db.execute(
        select(Experiment)
        .options(selectinload(Experiment.results))
        .where(
            and_(
                Experiment.experiment_id == experiment_id,
                Experiment.workspace_id == workspace_id,
            )
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


def _experiment_model(experiment: Experiment) -> ExperimentModel:
    results = [
        ExperimentResultModel(
            row_index=result.row_index,
            row=result.row or {},
            output=result.output,
            scores=result.scores or {},
            error=result.error,
            trace_id=result.trace_id,
        )
        for result in experiment.results
    ]
    return ExperimentModel(
        experiment_id=experiment.experiment_id,
        name=experiment.name,
        description=experiment.description,
        dataset_id=experiment.dataset_id,
        dataset_version=experiment.dataset_version,
        created_at=experiment.created_at,
        results=results,
        summary=summarize_scores(result.scores for result in results),
    )


@router.post(
    "/{workspace_id}/experiments",
    response_model=ExperimentModel,
    status_code=status.HTTP_201_CREATED,
)
async def create_experiment(
    workspace_id: UUID,
    body: ExperimentCreate,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    dataset_id = None
    dataset_version = None
    if body.dataset_name:
        dataset = await get_dataset_by_name(db, workspace_id, body.dataset_name)
        if dataset is None:
            raise not_found_response(f"Dataset '{body.dataset_name}' not found")
        version = await get_dataset_version(db, dataset, body.dataset_version)
        if version is None:
            raise not_found_response(
                f"Dataset '{body.dataset_name}' has no version {body.dataset_version}"
            )
        dataset_id = dataset.dataset_id
        dataset_version = version.version_number

    experiment = Experiment(
        workspace_id=workspace_id,
        dataset_id=dataset_id,
        dataset_version=dataset_version,
        name=body.name,
        description=body.description,
        results=[
            ExperimentResult(
                row_index=result.row_index,
                row=result.row,
                output=result.output,
                scores=result.scores,
                error=result.error,
                trace_id=result.trace_id,
            )
            for result in body.results
        ],
    )
    db.add(experiment)
    await db.commit()

    logger.info(
        "Stored experiment %s (%d results) in workspace %s",
        body.name,
        len(body.results),
        workspace_id,
    )
    return _experiment_model(
        await _load_experiment(db, workspace_id, experiment.experiment_id)
    )


@router.get("/{workspace_id}/experiments", response_model=list[ExperimentModel])
async def list_experiments(
    workspace_id: UUID,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Experiment)
        .options(selectinload(Experiment.results))
        .where(Experiment.workspace_id == workspace_id)
        .order_by(Experiment.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return [_experiment_model(obj) for obj in result.scalars().all()]


@router.get("/{workspace_id}/experiments/{experiment_id}", response_model=ExperimentModel)
async def get_experiment(
    workspace_id: UUID,
    experiment_id: UUID,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    experiment = await _load_experiment(db, workspace_id, experiment_id)
    if experiment is None:
        raise not_found_response(f"Experiment {experiment_id} not found")
    return _experiment_model(experiment)

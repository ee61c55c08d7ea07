"""
Versioned datasets. Pushing rows under an existing dataset name appends a
new version; reads default to the latest version.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_workspace_api_key,
)
from zeroeval_core.api.v1.helpers.responses import not_found_response
from zeroeval_core.db.session import get_db
from zeroeval_core.models.datasets import Dataset, DatasetVersion
from zeroeval_core.models.pydantic_models.datasets import (
    DatasetCreate,
    DatasetSummaryModel,
    DatasetVersionModel,
)

logger = logging.getLogger(__name__)
router = APIRouter()


async def get_dataset_by_name(
    db: AsyncSession, workspace_id: UUID, name: str
) -> Dataset | None:
    result = await db.execute(
        select(Dataset).where(
            and_(Dataset.workspace_id == workspace_id, Dataset.name == name)
        )
    )
    return result.scalar_one_or_none()


async def get_dataset_version(
    db: AsyncSession, dataset: Dataset, version: int | None = None
) -> DatasetVersion | None:
    query = select(DatasetVersion).where(DatasetVersion.dataset_id == dataset.dataset_id)
    if version is None:
        query = query.order_by(DatasetVersion.version_number.desc()).limit(1)
    else:
        query = query.where(DatasetVersion.version_number == version)
    result = await db.execute(query.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


def _version_model(dataset: Dataset, version: DatasetVersion) -> DatasetVersionModel:
    return DatasetVersionModel(
        dataset_id=dataset.dataset_id,
        name=dataset.name,
        description=dataset.description,
        version=version.version_number,
        rows=version.rows or [],
        created_at=version.created_at,
    )


@router.post(
    "/{workspace_id}/datasets",
    response_model=DatasetVersionModel,
    status_code=status.HTTP_201_CREATED,
)
async def push_dataset(
    workspace_id: UUID,
    body: DatasetCreate,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    dataset = await get_dataset_by_name(db, workspace_id, body.name)
    if dataset is None:
        dataset = Dataset(
            workspace_id=workspace_id, name=body.name, description=body.description
        )
        db.add(dataset)
        await db.flush()
        next_version = 1
    else:
        if body.description is not None:
            dataset.description = body.description
        result = await db.execute(
            select(func.max(DatasetVersion.version_number)).where(
                DatasetVersion.dataset_id == dataset.dataset_id
            )
        )
        next_version = (result.scalar() or 0) + 1

    version = DatasetVersion(
        dataset_id=dataset.dataset_id, version_number=next_version, rows=body.rows
    )
    db.add(version)
    await db.commit()
    await db.refresh(version)

    logger.info(
        "Pushed dataset %s v%d (%d rows) to workspace %s",
        body.name,
        next_version,
        len(body.rows),
        workspace_id,
    )
    return _version_model(dataset, version)


@router.get("/{workspace_id}/datasets", response_model=list[DatasetSummaryModel])
async def list_datasets(
    workspace_id: UUID,
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(Dataset).where(Dataset.workspace_id == workspace_id).order_by(Dataset.name)
    )
    summaries = []
    for dataset in result.scalars().all():
        latest = await get_dataset_version(db, dataset)
        summaries.append(
            DatasetSummaryModel(
                dataset_id=dataset.dataset_id,
                name=dataset.name,
                description=dataset.description,
                latest_version=latest.version_number if latest else 0,
                row_count=len(latest.rows or []) if latest else 0,
            )
        )
    return summaries


@router.get("/{workspace_id}/datasets/{name:path}", response_model=DatasetVersionModel)
async def get_dataset(
    workspace_id: UUID,
    name: str,
    version: int | None = Query(None, ge=1),
    current_key: AuthenticatedApiKey = Depends(get_workspace_api_key),
    db: AsyncSession = Depends(get_db),
):
    dataset = await get_dataset_by_name(db, workspace_id, name)
    if dataset is None:
        raise not_found_response(f"Dataset '{name}' not found")

    dataset_version = await get_dataset_version(db, dataset, version)
    if dataset_version is None:
        raise not_found_response(f"Dataset '{name}' has no version {version}")

    return _version_model(dataset, dataset_version)

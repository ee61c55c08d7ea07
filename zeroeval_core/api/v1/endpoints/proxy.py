import logging

from fastapi import APIRouter, Depends
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_current_api_key,
)
from zeroeval_core.core.completions import run_chat_completion
from zeroeval_core.core.model_resolver import TEST_MODEL_PREFIX, list_available_models
from zeroeval_core.db.session import get_db
from zeroeval_core.models.ab_tests import ABTest
from zeroeval_core.models.pydantic_models.chat import ChatCompletionRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/chat/completions")
async def proxy_chat_completions(
    body: ChatCompletionRequest,
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
    db: AsyncSession = Depends(get_db),
):
    """
    OpenAI Chat Completions compatible proxy.

    ``zeroeval/<TEST_ID>`` routes the request to a variant of the named
    A/B test; ``provider/model`` calls that model directly.
    """
    return await run_chat_completion(
        body, current_key, db, surface="proxy", allow_routing=True
    )


@router.get("/models")
async def proxy_models(
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ABTest.slug)
        .where(
            and_(
                ABTest.workspace_id == current_key.workspace_id,
                ABTest.status == "active",
            )
        )
        .order_by(ABTest.slug)
    )
    test_models = [
        {"id": f"{TEST_MODEL_PREFIX}/{slug}", "object": "model", "owned_by": "zeroeval"}
        for slug in result.scalars().all()
    ]
    return {"object": "list", "data": [*test_models, *list_available_models()]}

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from zeroeval_core.api.v1.helpers.authentication import (
    AuthenticatedApiKey,
    get_current_api_key,
)
from zeroeval_core.core.completions import run_chat_completion
from zeroeval_core.core.model_resolver import list_available_models
from zeroeval_core.db.session import get_db
from zeroeval_core.models.pydantic_models.chat import ChatCompletionRequest

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/chat/completions")
async def gateway_chat_completions(
    body: ChatCompletionRequest,
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
    db: AsyncSession = Depends(get_db),
):
    """OpenAI-compatible gateway: direct ``provider/model`` access, no A/B routing."""
    return await run_chat_completion(
        body, current_key, db, surface="gateway", allow_routing=False
    )


@router.get("/models")
async def gateway_models(
    current_key: AuthenticatedApiKey = Depends(get_current_api_key),
):
    return {"object": "list", "data": list_available_models()}

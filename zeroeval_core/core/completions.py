"""
Shared chat-completion flow behind ``/proxy/chat/completions`` and
``/v1/chat/completions``.

The proxy additionally resolves ``zeroeval/<TEST_ID>`` models to a weighted
variant of an active A/B test. Every call, routed or direct, is recorded as
a ``Completion`` row whose id is returned to the caller so that test signals
can be attached to it later.
"""

import json
import logging
import time
import uuid
from collections.abc import AsyncIterator

from fastapi.responses import JSONResponse, StreamingResponse
from opentelemetry import trace
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from zeroeval_core.api.v1.helpers.authentication import AuthenticatedApiKey
from zeroeval_core.api.v1.helpers.responses import (
    bad_gateway_response,
    bad_request_response,
    conflict_response,
    not_found_response,
)
from zeroeval_core.core.llms import (
    ProviderCallError,
    call_chat_completion,
    extract_usage,
    open_chat_completion_stream,
)
from zeroeval_core.core.model_resolver import (
    ModelResolutionError,
    parse_model,
    resolve_provider_model,
)
from zeroeval_core.core.routing import select_variant
from zeroeval_core.db.session import get_session_local
from zeroeval_core.models.ab_tests import ABTest, Completion, Variant
from zeroeval_core.models.pydantic_models.chat import ChatCompletionRequest

logger = logging.getLogger(__name__)

COMPLETION_ID_HEADER = "X-ZeroEval-Completion-Id"
TEST_ID_HEADER = "X-ZeroEval-Test-Id"
VARIANT_HEADER = "X-ZeroEval-Variant"


def new_completion_id() -> str:
    return f"chatcmpl-ze-{uuid.uuid4().hex}"


async def get_test_by_slug(
    db: AsyncSession, workspace_id: uuid.UUID, test_id: str
) -> ABTest | None:
    result = await db.execute(
        select(ABTest)
        .options(selectinload(ABTest.variants))
        .where(ABTest.workspace_id == workspace_id, ABTest.slug == test_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _route(
    body: ChatCompletionRequest,
    current_key: AuthenticatedApiKey,
    db: AsyncSession,
    allow_routing: bool,
) -> tuple[str, dict, ABTest | None, Variant | None]:
    """Resolve the request to (provider/model, params, test, variant)."""
    try:
        kind, target = parse_model(body.model)
    except ModelResolutionError as e:
        raise bad_request_response(str(e))

    params = body.provider_params()
    if kind == "direct":
        return target, params, None, None

    if not allow_routing:
        raise bad_request_response(
            "A/B test models are only available on the /proxy endpoint"
        )

    ab_test = await get_test_by_slug(db, current_key.workspace_id, target)
    if ab_test is None:
        raise not_found_response(f"A/B test '{target}' not found")
    if ab_test.status != "active":
        raise conflict_response(f"A/B test '{target}' is {ab_test.status}")

    try:
        variant = select_variant(ab_test.variants, test_id=ab_test.slug, sticky_key=body.user)
    except ValueError as e:
        raise conflict_response(str(e))

    # caller-supplied parameters win over the variant's defaults
    return variant.model, {**(variant.params or {}), **params}, ab_test, variant


def _response_headers(
    completion_id: str, ab_test: ABTest | None, variant: Variant | None
) -> dict[str, str]:
    headers = {COMPLETION_ID_HEADER: completion_id}
    if ab_test is not None and variant is not None:
        headers[TEST_ID_HEADER] = ab_test.slug
        headers[VARIANT_HEADER] = variant.name
    return headers


async def run_chat_completion(
    body: ChatCompletionRequest,
    current_key: AuthenticatedApiKey,
    db: AsyncSession,
    surface: str,
    allow_routing: bool,
):
    """Serve one chat completion request, routed or direct."""
    model, params, ab_test, variant = await _route(body, current_key, db, allow_routing)

    try:
        provider, model_name = resolve_provider_model(model)
    except ModelResolutionError as e:
        raise bad_request_response(str(e))

    completion_id = new_completion_id()
    completion = Completion(
        completion_id=completion_id,
        workspace_id=current_key.workspace_id,
        ab_test_id=ab_test.ab_test_id if ab_test else None,
        variant_id=variant.variant_id if variant else None,
        surface=surface,
        requested_model=body.model,
        model=model,
        stream=1 if body.stream else 0,
    )
    headers = _response_headers(completion_id, ab_test, variant)

    tracer = trace.get_tracer("zeroeval.proxy")
    with tracer.start_as_current_span(f"{surface}_chat_completion") as span:
        span.set_attribute("workspace_id", str(current_key.workspace_id))
        span.set_attribute("completion_id", completion_id)
        span.set_attribute("requested_model", body.model)
        span.set_attribute("model", model)
        if variant is not None:
            span.set_attribute("ab_test_id", ab_test.slug)
            span.set_attribute("variant", variant.name)

        started = time.perf_counter()
        try:
            if body.stream:
                chunks = await open_chat_completion_stream(
                    provider, model_name, body.messages, params
                )
            else:
                response = await call_chat_completion(
                    provider, model_name, body.messages, params
                )
        except ProviderCallError as e:
            completion.status = "failed"
            completion.error_message = str(e)
            completion.latency_ms = (time.perf_counter() - started) * 1000
            db.add(completion)
            await db.commit()
            span.set_attribute("status", "failed")
            raise bad_gateway_response(f"Provider call failed: {e}")

        completion.latency_ms = (time.perf_counter() - started) * 1000

        if body.stream:
            # usage is not known up front for streams; the row records the call
            db.add(completion)
            await db.commit()
            logger.info(
                "Streaming completion %s via %s (test=%s, variant=%s)",
                completion_id,
                model,
                ab_test.slug if ab_test else None,
                variant.name if variant else None,
            )
            return StreamingResponse(
                _sse_events(chunks, completion_id, model),
                media_type="text/event-stream",
                headers=headers,
            )

        usage = extract_usage(response)
        completion.prompt_tokens = usage["prompt_tokens"]
        completion.completion_tokens = usage["completion_tokens"]
        completion.cost = usage["cost"]
        db.add(completion)
        await db.commit()

        span.set_attribute("prompt_tokens", usage["prompt_tokens"])
        span.set_attribute("completion_tokens", usage["completion_tokens"])

    logger.info(
        "Served completion %s via %s (test=%s, variant=%s)",
        completion_id,
        model,
        ab_test.slug if ab_test else None,
        variant.name if variant else None,
    )

    response["id"] = completion_id
    response["model"] = model
    return JSONResponse(content=response, headers=headers)


async def _sse_events(
    chunks: AsyncIterator[dict], completion_id: str, model: str
) -> AsyncIterator[str]:
    try:
        async for chunk in chunks:
            chunk["id"] = completion_id
            chunk["model"] = model
            yield f"data: {json.dumps(chunk, default=str)}\n\n"
    except Exception as e:
        logger.error(f"Stream for completion {completion_id} failed: {e}")
        await _mark_stream_failed(completion_id, str(e))
        error = {"error": {"message": str(e), "type": "provider_error"}}
        yield f"data: {json.dumps(error)}\n\n"
    yield "data: [DONE]\n\n"


async def _mark_stream_failed(completion_id: str, message: str) -> None:
    # the request session is closed once the response starts streaming
    AsyncSessionLocal = get_session_local()
    async with AsyncSessionLocal() as session:
        await session.execute(
            update(Completion)
            .where(Completion.completion_id == completion_id)
            .values(status="failed", error_message=message)
        )
        await session.commit()

"""Chat endpoint: one conversational turn against the planner."""
from __future__ import annotations

import json
import logging
from time import perf_counter
from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from camino.api.deps import get_llm, get_store, get_tool_context
from camino.api.schemas.chat import ChatRequest, ChatResponse
from camino.observability.metrics import log_metric
from camino.observability.tracing import trace
from camino.services.chat_service import REPLY_APOLOGY, REPLY_INVALID_MESSAGES, handle_chat
from camino.services.plan_store import PlanStore
from camino.services.tools.base import ToolContext

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    response_model_exclude_none=True,
    tags=["chat"],
)
async def chat(
    request: Request,
    store: PlanStore = Depends(get_store),
    llm_client: Any = Depends(get_llm),
    context: ToolContext = Depends(get_tool_context),
) -> ChatResponse:
    """Always answers with HTTP 200; failures become a friendly reply."""
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    success = False

    try:
        with trace("chat.request", metadata={"route": "/api/chat"}, request_id=request_id):
            try:
                payload = ChatRequest.model_validate(await request.json())
            except (json.JSONDecodeError, ValidationError) as exc:
                logger.info("Rejected chat payload: %s", exc)
                return ChatResponse(reply=REPLY_INVALID_MESSAGES)

            response = await handle_chat(
                payload,
                store=store,
                llm_client=llm_client,
                context=context,
                request_id=request_id,
            )
            success = True
            return response
    except Exception:
        logger.exception("Chat request failed")
        return ChatResponse(reply=REPLY_APOLOGY)
    finally:
        latency_ms = (perf_counter() - start) * 1000
        log_metric("chat.request.success", 1 if success else 0, {"request_id": request_id})
        log_metric("chat.request.latency_ms", latency_ms, {"request_id": request_id})

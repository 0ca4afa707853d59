"""
Chat router.

Endpoints:
  POST /chat/stream   — SSE stream of text / card_candidate / done / error events
  POST /chat/define   — structured definition of a single word
  POST /chat/analyze  — sentence translation with per-word deck status
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from vocab_assistant.dependencies import (
    get_anki_client,
    get_generator,
    get_request_tracker,
    get_user_settings,
)
from vocab_assistant.models.chat import (
    AnalyzeRequest,
    ChatStreamRequest,
    DefineRequest,
    EventType,
    SentenceAnalysis,
    StreamEvent,
    WordAnalysis,
)
from vocab_assistant.models.settings import UserSettings
from vocab_assistant.services.anki_connect import AnkiConnectClient
from vocab_assistant.services.chat_orchestrator import (
    RequestTracker,
    analyze_sentence,
    define_word,
    stream_chat,
)
from vocab_assistant.services.llm_service import LLMError, LLMUnavailableError, TextGenerator

logger = logging.getLogger(__name__)
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _llm_http_error(e: LLMError) -> HTTPException:
    status = 503 if isinstance(e, LLMUnavailableError) else 502
    return HTTPException(status_code=status, detail=str(e))


@router.post("/stream")
async def chat_stream(
    body: ChatStreamRequest,
    user_settings: UserSettings = Depends(get_user_settings),
    generator: TextGenerator = Depends(get_generator),
    anki: AnkiConnectClient = Depends(get_anki_client),
    tracker: RequestTracker = Depends(get_request_tracker),
):
    if not body.new_message.strip():
        raise HTTPException(status_code=400, detail="new_message is required")
    deck = body.deck or user_settings.default_deck

    async def event_generator():
        try:
            async for event in stream_chat(
                body.new_message,
                deck,
                generator,
                anki,
                highlighted=body.highlighted_words,
                tracker=tracker,
            ):
                yield event.to_sse()
        except Exception as e:
            logger.exception("Chat stream failed")
            yield StreamEvent(type=EventType.ERROR, data=str(e)).to_sse()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.post("/define", response_model=WordAnalysis)
async def define(
    body: DefineRequest,
    user_settings: UserSettings = Depends(get_user_settings),
    generator: TextGenerator = Depends(get_generator),
    anki: AnkiConnectClient = Depends(get_anki_client),
):
    if not body.word.strip():
        raise HTTPException(status_code=400, detail="word is required")
    try:
        return await define_word(
            body.word.strip(), body.deck or user_settings.default_deck, generator, anki
        )
    except LLMError as e:
        logger.warning("Defining %r failed: %s", body.word, e)
        raise _llm_http_error(e) from e


@router.post("/analyze", response_model=SentenceAnalysis)
async def analyze(
    body: AnalyzeRequest,
    user_settings: UserSettings = Depends(get_user_settings),
    generator: TextGenerator = Depends(get_generator),
    anki: AnkiConnectClient = Depends(get_anki_client),
):
    if not body.sentence.strip():
        raise HTTPException(status_code=400, detail="sentence is required")
    try:
        return await analyze_sentence(
            body.sentence.strip(), body.deck or user_settings.default_deck, generator, anki
        )
    except LLMError as e:
        logger.warning("Analyzing sentence failed: %s", e)
        raise _llm_http_error(e) from e

"""
Chat orchestration: prompt selection, streaming, card extraction.

stream_chat() yields StreamEvents in this order:
  text*  (card_candidate* done | error)

Soft failures: AnkiConnect lookups are enrichment only and never fail the
turn (already_exists becomes None). A generation failure ends the stream with
a single error event and skips extraction. Malformed extraction output skips
that one candidate.
"""
from __future__ import annotations

import json
import logging
import re
import uuid
from typing import Any, AsyncIterator

from vocab_assistant.models.cards import CardCandidate, CardContent
from vocab_assistant.models.chat import (
    AnalyzedWord,
    EventType,
    Example,
    LookupMode,
    SentenceAnalysis,
    StreamEvent,
    WordAnalysis,
)
from vocab_assistant.services import prompts
from vocab_assistant.services.anki_connect import AnkiConnectClient, AnkiError
from vocab_assistant.services.llm_service import LLMError, TextGenerator

logger = logging.getLogger(__name__)

MAX_SINGLE_WORD_CHARS = 30

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)
_LIST_SPLIT_RE = re.compile(r"[,،;]")


class RequestTracker:
    """Tracks the active chat request; starting a new one makes older ones stale."""

    def __init__(self) -> None:
        self._current: str | None = None

    def begin(self) -> str:
        token = uuid.uuid4().hex
        self._current = token
        return token

    def is_current(self, token: str) -> bool:
        return self._current == token

    def finish(self, token: str) -> None:
        if self._current == token:
            self._current = None


# --- Parsing helpers ---


def classify_lookup(text: str, highlighted: list[str] | None = None) -> LookupMode:
    if highlighted and any(w.strip() for w in highlighted):
        return LookupMode.FOCUSED
    text = text.strip()
    if text and not any(c.isspace() for c in text) and len(text) < MAX_SINGLE_WORD_CHARS:
        return LookupMode.WORD
    return LookupMode.SENTENCE


def select_prompt(mode: LookupMode) -> str:
    return {
        LookupMode.WORD: prompts.WORD_PROMPT,
        LookupMode.SENTENCE: prompts.SENTENCE_PROMPT,
        LookupMode.FOCUSED: prompts.FOCUSED_WORDS_PROMPT,
    }[mode]


def _clean_word(raw: str) -> str:
    return raw.strip().strip("*_`").strip().rstrip(".।").strip()


def _dedupe(words: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for word in words:
        key = word.lower()
        if word and key not in seen:
            seen.add(key)
            result.append(word)
    return result


def parse_vocabulary_line(text: str) -> list[str]:
    """Words from the last **Vocabulary:** marker line, in order, deduplicated."""
    for line in reversed(text.splitlines()):
        idx = line.find(prompts.VOCABULARY_MARKER)
        if idx == -1:
            continue
        listed = line[idx + len(prompts.VOCABULARY_MARKER):]
        return _dedupe([_clean_word(w) for w in _LIST_SPLIT_RE.split(listed)])
    return []


def candidate_words(
    mode: LookupMode, user_text: str, generated: str, highlighted: list[str] | None
) -> list[str]:
    if mode == LookupMode.WORD:
        return [user_text.strip()]
    if mode == LookupMode.FOCUSED:
        return _dedupe([_clean_word(w) for w in highlighted or []])
    return parse_vocabulary_line(generated)


def parse_json_object(raw: str) -> dict[str, Any]:
    """Parse a JSON object out of model output, tolerating code fences and stray prose."""
    text = _FENCE_RE.sub("", raw.strip())
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise ValueError("no JSON object in model output")
    data = json.loads(text[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError("model output is not a JSON object")
    return data


def _pick(data: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def parse_card(raw: str, word: str, example_override: str | None = None) -> CardContent:
    """Build a CardContent from extraction output. Raises ValueError if malformed."""
    data = parse_json_object(raw)
    definition = _pick(data, "definition")
    if not definition:
        raise ValueError("extraction output has no definition")
    return CardContent(
        word=_pick(data, "word") or word,
        definition=definition,
        example_sentence=example_override or _pick(data, "exampleSentence", "example_sentence"),
        sentence_translation=_pick(data, "sentenceTranslation", "sentence_translation"),
    )


# --- Anki lookups (best-effort) ---


async def lookup_existing(
    anki: AnkiConnectClient, word: str, deck: str
) -> tuple[bool | None, int | None]:
    """(already_exists, note_id); (None, None) when AnkiConnect could not answer."""
    try:
        note = await anki.search_word(word, deck)
    except AnkiError as e:
        logger.warning("Duplicate lookup for %r failed: %s", word, e)
        return None, None
    if note is None:
        return False, None
    return True, note.note_id


async def extract_cards(
    generator: TextGenerator,
    mode: LookupMode,
    user_text: str,
    generated: str,
    highlighted: list[str] | None = None,
) -> list[CardContent]:
    # Multi-word modes always use the user's own sentence as the example.
    example = None if mode == LookupMode.WORD else user_text.strip()
    cards = []
    for word in candidate_words(mode, user_text, generated, highlighted):
        try:
            raw = await generator.generate(
                prompts.EXTRACT_CARD_PROMPT,
                prompts.extract_user_prompt(word, user_text, generated, example),
            )
            cards.append(parse_card(raw, word, example))
        except (ValueError, LLMError) as e:
            logger.warning("Skipping card candidate %r: %s", word, e)
    return cards


# --- Streaming chat ---


async def stream_chat(
    message: str,
    deck: str,
    generator: TextGenerator,
    anki: AnkiConnectClient,
    highlighted: list[str] | None = None,
    tracker: RequestTracker | None = None,
) -> AsyncIterator[StreamEvent]:
    token = tracker.begin() if tracker else None

    def stale() -> bool:
        if tracker is None or tracker.is_current(token):
            return False
        logger.info("Chat request %s superseded, stopping stream", token)
        return True

    try:
        mode = classify_lookup(message, highlighted)
        lookups: dict[str, tuple[bool | None, int | None]] = {}

        if mode == LookupMode.WORD:
            word = message.strip()
            lookups[word.lower()] = await lookup_existing(anki, word, deck)
            if lookups[word.lower()][0]:
                yield StreamEvent(
                    type=EventType.TEXT,
                    data=f'I found "{word}" in your deck "{deck}".\n\n',
                )

        user_text = (
            prompts.focused_user_prompt(message, highlighted or [])
            if mode == LookupMode.FOCUSED
            else message
        )
        parts: list[str] = []
        try:
            async for chunk in generator.stream_generate(select_prompt(mode), user_text):
                if stale():
                    return
                parts.append(chunk)
                yield StreamEvent(type=EventType.TEXT, data=chunk)
        except LLMError as e:
            logger.warning("Generation failed: %s", e)
            yield StreamEvent(type=EventType.ERROR, data=str(e))
            return

        generated = "".join(parts)
        for card in await extract_cards(generator, mode, message, generated, highlighted):
            if stale():
                return
            key = card.word.lower()
            if key not in lookups:
                lookups[key] = await lookup_existing(anki, card.word, deck)
            already_exists, note_id = lookups[key]
            candidate = CardCandidate(
                **card.model_dump(), already_exists=already_exists, note_id=note_id
            )
            yield StreamEvent(type=EventType.CARD_CANDIDATE, data=candidate.model_dump())

        yield StreamEvent(type=EventType.DONE)
    finally:
        if tracker is not None:
            tracker.finish(token)


# --- Non-streaming helpers ---


async def define_word(
    word: str, deck: str, generator: TextGenerator, anki: AnkiConnectClient
) -> WordAnalysis:
    """Structured definition of one word. Raises LLMError if generation fails."""
    already_exists, note_id = await lookup_existing(anki, word, deck)
    raw = await generator.generate(prompts.DEFINE_PROMPT, word)
    base = {"exists_in_anki": bool(already_exists), "note_id": note_id}

    try:
        data = parse_json_object(raw)
    except ValueError:
        return WordAnalysis(word=word, definition=raw.strip(), **base)

    examples = []
    for item in data.get("examples") or []:
        if isinstance(item, dict):
            examples.append(Example(bangla=_pick(item, "bangla"), english=_pick(item, "english")))
    return WordAnalysis(
        word=_pick(data, "word") or word,
        lemma=_pick(data, "lemma"),
        part_of_speech=_pick(data, "partOfSpeech", "part_of_speech"),
        definition=_pick(data, "definition"),
        examples=examples,
        notes=_pick(data, "notes"),
        **base,
    )


async def analyze_sentence(
    sentence: str, deck: str, generator: TextGenerator, anki: AnkiConnectClient
) -> SentenceAnalysis:
    """Translate a sentence and flag which of its words are already in the deck."""
    raw = await generator.generate(prompts.ANALYZE_PROMPT, sentence)
    try:
        data = parse_json_object(raw)
    except ValueError:
        return SentenceAnalysis(original_sentence=sentence, translation=raw.strip())

    words: list[AnalyzedWord] = []
    for item in data.get("words") or []:
        if not isinstance(item, dict) or not _pick(item, "word"):
            continue
        words.append(
            AnalyzedWord(
                word=_pick(item, "word"),
                lemma=_pick(item, "lemma") or _pick(item, "word"),
                part_of_speech=_pick(item, "partOfSpeech", "part_of_speech"),
                meaning=_pick(item, "meaning"),
            )
        )

    try:
        found = await anki.search_words([w.lemma for w in words], deck)
    except AnkiError as e:
        logger.warning("Anki lookup for sentence analysis failed: %s", e)
        found = {}

    enriched = [
        w.model_copy(
            update={
                "exists_in_anki": w.lemma in found,
                "note_id": found[w.lemma].note_id if w.lemma in found else None,
            }
        )
        for w in words
    ]
    return SentenceAnalysis(
        original_sentence=sentence,
        translation=_pick(data, "translation"),
        words=enriched,
        grammar=_pick(data, "grammar"),
    )

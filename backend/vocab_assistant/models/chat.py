from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel


class LookupMode(str, Enum):
    WORD = "word"
    SENTENCE = "sentence"
    FOCUSED = "focused"


class EventType(str, Enum):
    TEXT = "text"
    CARD_CANDIDATE = "card_candidate"
    DONE = "done"
    ERROR = "error"


class StreamEvent(BaseModel):
    type: EventType
    data: Any = None

    def to_sse(self) -> str:
        return f"data: {self.model_dump_json()}\n\n"


class ChatStreamRequest(BaseModel):
    new_message: str
    deck: str | None = None
    highlighted_words: list[str] = []


class DefineRequest(BaseModel):
    word: str
    deck: str | None = None


class AnalyzeRequest(BaseModel):
    sentence: str
    deck: str | None = None


class Example(BaseModel):
    bangla: str = ""
    english: str = ""


class WordAnalysis(BaseModel):
    word: str
    lemma: str = ""
    part_of_speech: str = ""
    definition: str = ""
    examples: list[Example] = []
    notes: str = ""
    exists_in_anki: bool = False
    note_id: int | None = None


class AnalyzedWord(BaseModel):
    word: str
    lemma: str = ""
    part_of_speech: str = ""
    meaning: str = ""
    exists_in_anki: bool = False
    note_id: int | None = None


class SentenceAnalysis(BaseModel):
    original_sentence: str
    translation: str = ""
    words: list[AnalyzedWord] = []
    grammar: str = ""

from vocab_assistant.models.anki import AnkiNote, CreateNoteRequest, NoteField, SearchNotesRequest
from vocab_assistant.models.cards import (
    CardCandidate,
    CardContent,
    PendingCard,
    SessionState,
    SubmitResult,
    SubmitStatus,
    SyncedCard,
    SyncResult,
)
from vocab_assistant.models.chat import (
    AnalyzedWord,
    EventType,
    LookupMode,
    SentenceAnalysis,
    StreamEvent,
    WordAnalysis,
)
from vocab_assistant.models.settings import AIProvider, SettingsUpdate, UserSettings

__all__ = [
    "AIProvider",
    "AnalyzedWord",
    "AnkiNote",
    "CardCandidate",
    "CardContent",
    "CreateNoteRequest",
    "EventType",
    "LookupMode",
    "NoteField",
    "PendingCard",
    "SearchNotesRequest",
    "SentenceAnalysis",
    "SessionState",
    "SettingsUpdate",
    "StreamEvent",
    "SubmitResult",
    "SubmitStatus",
    "SyncedCard",
    "SyncResult",
    "UserSettings",
    "WordAnalysis",
]

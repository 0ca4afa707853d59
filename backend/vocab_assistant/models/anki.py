from pydantic import BaseModel


class NoteField(BaseModel):
    value: str
    order: int


class AnkiNote(BaseModel):
    note_id: int
    model_name: str
    tags: list[str] = []
    fields: dict[str, NoteField] = {}


class SearchNotesRequest(BaseModel):
    query: str


class CreateNoteRequest(BaseModel):
    deck_name: str
    model_name: str
    fields: dict[str, str]  # canonical names: Word, Definition, Example, Translation
    tags: list[str] | None = None

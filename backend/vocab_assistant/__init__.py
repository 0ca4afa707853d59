from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vocab_assistant.config import settings
from vocab_assistant.db import init_all_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    from vocab_assistant.db.sqlite import get_db
    from vocab_assistant.services.chat_orchestrator import RequestTracker
    from vocab_assistant.services.session_cards import SessionCardStore, load_pending_queue

    await init_all_databases(settings.data_dir)

    store = SessionCardStore()
    async for db in get_db():
        await load_pending_queue(db, store)
    app.state.session_store = store
    app.state.request_tracker = RequestTracker()
    yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="Vocab Assistant Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from vocab_assistant.routers import anki, chat, health, session
    from vocab_assistant.routers import settings as settings_router

    application.include_router(health.router, prefix="/api", tags=["health"])
    application.include_router(anki.router, prefix="/api/anki", tags=["anki"])
    application.include_router(chat.router, prefix="/api/chat", tags=["chat"])
    application.include_router(
        settings_router.router, prefix="/api/settings", tags=["settings"]
    )
    application.include_router(session.router, prefix="/api/session", tags=["session"])

    return application


app = create_app()

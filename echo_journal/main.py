"""Echo Journal API - FastAPI application entry point.

Invariants:
    - Configuration is read once here (get_settings + ensure_configured) and passed down
    - ConfigurationError aborts startup; nothing is half-initialized
    - Routes registered explicitly (no auto-discovery)
    - Shutdown releases the journal client's subscriptions before closing transports and the pool
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from echo_journal.api.error_handlers import register_error_handlers
from echo_journal.api.routes import entries, health, session
from echo_journal.config import ensure_configured, get_settings
from echo_journal.infrastructure.database import DatabaseSessionManager
from echo_journal.infrastructure.entry_store import SqlEntryStore
from echo_journal.infrastructure.generative_client import HttpxGenerativeTransport
from echo_journal.infrastructure.identity_provider import FirebaseIdentityProvider
from echo_journal.infrastructure.observability import setup_logging
from echo_journal.services.journal_client import build_journal_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = ensure_configured(get_settings())
    setup_logging(settings.log_level, settings.log_format)

    db = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    await db.create_schema()
    identity = FirebaseIdentityProvider(
        settings.identity_api_key, settings.identity_base_url,
    )
    transport = HttpxGenerativeTransport(
        settings.gemini_api_key,
        settings.gemini_base_url,
        settings.gemini_model,
        timeout_seconds=settings.gemini_timeout_seconds,
    )
    journal = build_journal_client(
        settings, identity, SqlEntryStore(db, settings.app_id), transport,
    )
    journal.start()
    app.state.db = db
    app.state.journal = journal
    logger.info("Echo Journal API started")
    try:
        yield
    finally:
        logger.info("Echo Journal API shutting down")
        journal.close()
        await transport.aclose()
        await identity.aclose()
        await db.dispose()


app = FastAPI(
    title="Echo Journal API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(session.router)
app.include_router(entries.router)

register_error_handlers(app)

"""Root conftest - shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys
os.environ.setdefault("GEMINI_API_KEY", "test-fake-gemini-key")
os.environ.setdefault("IDENTITY_API_KEY", "test-fake-identity-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("LOG_FORMAT", "text")

"""Root pytest configuration."""

import os

# Modules that build the global engine at import or first request need a URL
# before any itinera import; an in-memory aiosqlite database keeps tests local.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

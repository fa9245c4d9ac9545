# backend/iara/db/__init__.py

"""
Persistence layer: users and approvals, cases with their attachments,
AI responses and processing logs, per-user and system settings.
"""

from iara.db.database import Base, SessionLocal, engine, get_db, init_db
from iara.db import models, schemas

__all__ = [
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "models",
    "schemas",
]

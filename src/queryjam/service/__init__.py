"""
Service module - persistence and application wiring.

Provides:
- Database utilities (Base, Database)
- SQLAlchemy models

The app factory lives in queryjam.service.app and the service container in
queryjam.service.container; both import the runtime and are not loaded here.
"""

from __future__ import annotations

from .database import Base, Database
from .models import Dataset, DatasetRow, Member, Message, Query, QueryStatus, Session

__all__ = [
    # Database
    "Base",
    "Database",
    # Models
    "Session",
    "Member",
    "Dataset",
    "DatasetRow",
    "Query",
    "QueryStatus",
    "Message",
]

"""
Pydantic models for sessions, datasets, chat and the query assistant.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import Field, field_validator

from .query_types import CamelModel


# --- Sessions ---

class SessionCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    is_public: bool = False


class SessionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_public: Optional[bool] = None
    active_dataset_id: Optional[str] = None


class JoinSessionRequest(CamelModel):
    access_code: str = Field(min_length=1)


class MemberOut(CamelModel):
    user_id: str
    role: str
    joined_at: datetime


class SessionOut(CamelModel):
    """
    Session as seen by one caller.

    `access_code` is only filled in for the owner.
    """
    id: str
    name: str
    description: str
    owner_id: str
    is_public: bool
    access_code: Optional[str] = None
    active_dataset_id: Optional[str] = None
    members: list[MemberOut] = Field(default_factory=list)
    created_at: datetime
    user_role: str = "none"
    can_edit: bool = False


# --- Datasets ---

class ColumnDef(CamelModel):
    name: str
    type: str = "string"


class DatasetCreate(CamelModel):
    """
    POST /datasets

    Rows are JSON objects; the column schema is inferred from them.
    """
    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    session_id: Optional[str] = None
    rows: list[dict[str, Any]] = Field(default_factory=list)


class DatasetOut(CamelModel):
    id: str
    name: str
    description: str
    owner_id: str
    session_id: Optional[str] = None
    collection_name: str
    columns: list[ColumnDef] = Field(default_factory=list)
    created_at: datetime


# --- Chat ---

MAX_MESSAGE_LENGTH = 2000


class MessageCreate(CamelModel):
    content: str
    type: Literal["text", "query-comment"] = "text"
    related_query_id: Optional[str] = None

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Message content is required")
        if len(value) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")
        return value


class MessageOut(CamelModel):
    id: str
    session_id: str
    user_id: Optional[str] = None
    content: str
    type: str
    related_query_id: Optional[str] = None
    created_at: datetime


# --- Query assistant ---

class GenerateQueryRequest(CamelModel):
    prompt: str = Field(min_length=1)
    dataset_id: Optional[str] = None


class GenerateQueryResponse(CamelModel):
    success: bool = True
    query: str


class ExplainQueryRequest(CamelModel):
    query: str = Field(min_length=1)


class ExplainErrorRequest(CamelModel):
    error_message: str = Field(min_length=1)


class ExplanationResponse(CamelModel):
    success: bool = True
    explanation: str


class SuggestionsResponse(CamelModel):
    success: bool = True
    suggestions: list[str]

"""Streaming frame envelopes exchanged over the score WebSocket."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScoreMessage(BaseModel):
    """Outbound telemetry frame; metric bodies are opaque to the client."""

    model_config = ConfigDict(populate_by_name=True)

    game: str
    data: List[Dict[str, Any]] = Field(default_factory=list)
    message_id: Optional[str] = Field(default=None, alias="messageId")
    time_elapsed: Optional[float] = Field(default=None, alias="timeElapsed")

    def to_frame(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_frame(cls, raw: str | bytes) -> ScoreMessage:
        return cls.model_validate_json(raw)


class ScoreResponse(BaseModel):
    """Inbound frame carrying a value computed by the backend."""

    model_config = ConfigDict(populate_by_name=True)

    message_id: Optional[str] = Field(default=None, alias="messageId")
    value: float

    @classmethod
    def from_frame(cls, raw: str | bytes) -> ScoreResponse:
        return cls.model_validate_json(raw)

    def to_frame(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

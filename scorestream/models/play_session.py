from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PlaySessionData(BaseModel):
    """Session details returned by the validation endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    can_start_game: bool = Field(default=False, alias="canStartGame")
    username: Optional[str] = None
    save_results: bool = Field(default=False, alias="saveResults")
    input: Optional[str] = None


class PlaySessionResponse(BaseModel):
    """Envelope of GET /api/play-sessions/<sessionId>."""

    status: str
    data: Optional[PlaySessionData] = None
    meta: Optional[str] = None

    @property
    def can_start(self) -> bool:
        return self.status == "SUCCESS" and self.data is not None and self.data.can_start_game


class ResultData(BaseModel):
    score: float


class ResultSubmission(BaseModel):
    """Body of POST /api/results/<sessionId>."""

    game: str
    variant: str
    input: str
    results: ResultData

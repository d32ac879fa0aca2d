"""Validated identity of the running play session."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SessionContext:
    """Immutable scope shared by validation, streaming and result submission."""

    session_id: str
    variant: str
    input_mode: str
    game_id: str
    lang: str = ""
    test_name: str = ""
    test_rank: str = ""
    device: str = ""

    def __post_init__(self) -> None:
        if not self.session_id:
            raise ValueError("session_id must be a non-empty string")

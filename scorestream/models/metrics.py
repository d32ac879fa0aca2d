"""Builders for the per-variant score frames.

The streaming core treats metric bodies as opaque dicts. These helpers only
give callers the field names each game variant reports.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .frames import ScoreMessage


def default_score(game: str, score: float) -> ScoreMessage:
    return ScoreMessage(game=game, data=[{"score": score}])


def platformer_score(victim: int = 0, streak: int = 0) -> ScoreMessage:
    return ScoreMessage(game="platformer", data=[{"victim": victim, "streak": streak}])


def aim_score(kind: str, precision: float = 0.0, age: int = 0, nth: int = 0) -> ScoreMessage:
    """Aim frames are correlated; the messageId is assigned when the frame is sent."""
    return ScoreMessage(
        game="aim-gridshot",
        data=[{"type": kind, "precision": precision, "age": age, "nth": nth}],
    )


def multitasking_score(
    score: float,
    obstacle_block: bool = False,
    bars_active: int = 0,
    target_clicks: Optional[Iterable[str]] = None,
) -> ScoreMessage:
    return ScoreMessage(
        game="multitasking",
        data=[
            {
                "score": score,
                "obstacleBlock": obstacle_block,
                "barsActive": bars_active,
                "targetClicks": list(target_clicks or []),
            }
        ],
    )


def observe_score(score: float, question: str, answer: str) -> ScoreMessage:
    return ScoreMessage(game="observe", data=[{"score": score, "question": question, "answer": answer}])


def hold_the_wall_score(time_elapsed: float, score: float) -> ScoreMessage:
    return ScoreMessage(game="holdthewall", time_elapsed=time_elapsed, data=[{"score": score}])


def button_smash_score(score: float) -> ScoreMessage:
    return ScoreMessage(game="buttonsmash", data=[{"score": score}])


def stay_on_target_score(time_elapsed: float, score: float) -> ScoreMessage:
    return ScoreMessage(game="stayontarget", time_elapsed=time_elapsed, data=[{"score": score}])


__all__ = [
    "default_score",
    "platformer_score",
    "aim_score",
    "multitasking_score",
    "observe_score",
    "hold_the_wall_score",
    "button_smash_score",
    "stay_on_target_score",
]

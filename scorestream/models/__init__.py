from .frames import ScoreMessage, ScoreResponse
from .play_session import PlaySessionData, PlaySessionResponse, ResultData, ResultSubmission
from .session import SessionContext

__all__ = [
    "ScoreMessage",
    "ScoreResponse",
    "PlaySessionData",
    "PlaySessionResponse",
    "ResultData",
    "ResultSubmission",
    "SessionContext",
]

from datetime import datetime
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field


class GameIn(BaseModel):
    """One imported game, taken in whatever shape the client has.

    Field values are checked and normalized by ``stores.base.prepare_game``,
    so an empty ``date`` falls back the same way a missing one does.
    """

    model_config = ConfigDict(extra="ignore")

    pgn: Any = None
    fens: Any = None
    date: Any = None
    created_at: Any = None


class ImportRequest(BaseModel):
    games: List[GameIn] = Field(...)


class ImportOut(BaseModel):
    imported: int


class GameOut(BaseModel):
    id: int
    pgn: str
    fens: Any
    date: datetime


class GamesOut(BaseModel):
    games: List[GameOut]

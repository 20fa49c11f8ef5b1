# Role: Shapes for things the resolver matches against (directory entries, catalog fixtures)
# and for what it hands back (ranked candidates wrapped in a Resolution).

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class DirectoryEntry(BaseModel):
    id: str
    name: str
    balance: float = 0.0


class Fixture(BaseModel):
    id: Optional[str] = None
    home_team: str = ""
    away_team: str = ""
    date: Optional[str] = None
    status: Optional[str] = None
    league: Optional[str] = None

    @property
    def display_name(self) -> str:
        return f"{self.home_team} vs {self.away_team}".strip()


class EntityCandidate(BaseModel):
    id: str
    display_name: str
    score: float = 1.0
    date: Optional[str] = None


ResolutionStatus = Literal["resolved", "ambiguous", "not_found", "stale"]


class Resolution(BaseModel):
    status: ResolutionStatus
    query: str = ""
    candidates: List[EntityCandidate] = Field(default_factory=list)

    @property
    def selected(self) -> Optional[EntityCandidate]:
        if self.status == "resolved" and self.candidates:
            return self.candidates[0]
        return None

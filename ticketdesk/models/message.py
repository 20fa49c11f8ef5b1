# Role: Single chat message schema for conversation_history. Stored in ConversationState as an append-only log;
# a system message carrying TILE_SEPARATOR marks where a new context window ("tile") starts.

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "assistant", "system"]

# Key line: internal sentinel, never rendered and never shown to the classifier.
TILE_SEPARATOR = "__TILE_SEPARATOR__"


class Message(BaseModel):
    role: Role
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    intent_kind: Optional[str] = None
    actions: List[str] = Field(default_factory=list)

    @property
    def is_tile_separator(self) -> bool:
        return self.role == "system" and self.content == TILE_SEPARATOR

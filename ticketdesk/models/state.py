# Role: Per-session state container. Holds the conversation log with its tile boundary, the cached vendor/bank
# directories, and the single open ClarificationState (None means Idle).

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, Field

from ticketdesk.models.drafts import CounterpartyDraft, QueryDraft, TransactionDraft
from ticketdesk.models.entities import DirectoryEntry, EntityCandidate
from ticketdesk.models.intent import IntentKind, MissingField
from ticketdesk.models.message import Message

Draft = Annotated[Union[TransactionDraft, CounterpartyDraft, QueryDraft], Field(discriminator="kind")]


class Phase(str, Enum):
    AWAITING_FIELD = "awaiting_field"
    AWAITING_DISAMBIGUATION = "awaiting_disambiguation"
    READY_TO_CONFIRM = "ready_to_confirm"


class SuspendedDraft(BaseModel):
    # Key line: the draft waiting for a nested create-counterparty sub-flow to finish.
    intent_kind: IntentKind
    partial_payload: Draft


class ClarificationState(BaseModel):
    phase: Phase
    intent_kind: IntentKind
    partial_payload: Draft
    awaiting_field: Optional[MissingField] = None

    disambiguation_field: Optional[MissingField] = None
    candidates: List[EntityCandidate] = Field(default_factory=list)
    # Name the operator typed when a counterparty lookup found nothing.
    unresolved_name: Optional[str] = None

    parent: Optional[SuspendedDraft] = None


class ConversationState(BaseModel):
    session_id: str
    conversation_history: List[Message] = Field(default_factory=list)

    # Key line: tiles are a window over the log; history before tile_start is out of context.
    tile_start: int = 0

    clarification: Optional[ClarificationState] = None

    vendors: List[DirectoryEntry] = Field(default_factory=list)
    banks: List[DirectoryEntry] = Field(default_factory=list)
    directories_loaded: bool = False

    turn_count: int = 0

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_idle(self) -> bool:
        return self.clarification is None

# Role: Small typed contract for routing. Decision is the output of DecisionLogic and drives the FlowController:
# (ask for a field / disambiguate / offer creation / confirm / run a query). The validator keeps field-bearing
# actions honest.

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from ticketdesk.models.entities import EntityCandidate
from ticketdesk.models.intent import MissingField


class Action(str, Enum):
    ASK_FIELD = "ask_field"
    DISAMBIGUATE = "disambiguate"
    OFFER_CREATE = "offer_create"
    CONFIRM = "confirm"
    RUN_QUERY = "run_query"


class Decision(BaseModel):
    action: Action
    field: Optional[MissingField] = None
    missing_fields: List[MissingField] = Field(default_factory=list)
    candidates: List[EntityCandidate] = Field(default_factory=list)
    unresolved_name: Optional[str] = None
    warning: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _check_field(self):
        # ASK_FIELD / DISAMBIGUATE / OFFER_CREATE are always about one field
        if self.action in {Action.ASK_FIELD, Action.DISAMBIGUATE, Action.OFFER_CREATE} and self.field is None:
            raise ValueError(f"field is required when action={self.action.value}")

        if self.action == Action.DISAMBIGUATE and len(self.candidates) < 2:
            raise ValueError("DISAMBIGUATE needs at least two candidates")

        # CONFIRM / RUN_QUERY must not carry an open question
        if self.action in {Action.CONFIRM, Action.RUN_QUERY}:
            if self.field is not None:
                raise ValueError("field must be None unless a question is being asked")
            if self.candidates:
                raise ValueError("candidates must be empty unless action=DISAMBIGUATE")

        return self

# Role: Read-only transparency endpoint for the UI, plus the explicit "new tile" control.
# Only the visible transcript is exposed; the tile sentinel never leaves the server.

from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from ticketdesk.api.deps import flow_controller
from ticketdesk.models.state import ConversationState
from ticketdesk.utils.history import visible_messages

router = APIRouter(tags=["state"])


class MessageOut(BaseModel):
    role: str
    content: str
    intent_kind: Optional[str] = None
    actions: List[str] = []


class StateSnapshot(BaseModel):
    session_id: str
    phase: Optional[str]
    intent_kind: Optional[str]
    awaiting_field: Optional[str]
    draft: Optional[dict]
    candidates: List[dict]
    tile_messages: List[MessageOut]
    history_length: int
    turn_count: int


@router.get("/state/{session_id}", response_model=StateSnapshot)
def get_state(session_id: str) -> StateSnapshot:
    manager = flow_controller.state_manager
    # Key line: reading an unknown session shows an empty snapshot without creating one.
    state = manager.get(session_id) or ConversationState(session_id=session_id)
    clar = state.clarification
    pending = (clar.awaiting_field or clar.disambiguation_field) if clar else None

    return StateSnapshot(
        session_id=session_id,
        phase=clar.phase.value if clar else None,
        intent_kind=clar.intent_kind.value if clar else None,
        awaiting_field=pending.value if pending else None,
        draft=clar.partial_payload.model_dump(mode="json") if clar else None,
        candidates=[c.model_dump() for c in clar.candidates] if clar else [],
        tile_messages=[
            MessageOut(role=m.role, content=m.content, intent_kind=m.intent_kind, actions=m.actions)
            for m in manager.tile_messages(state)
        ],
        history_length=len(visible_messages(state.conversation_history)),
        turn_count=state.turn_count,
    )


@router.post("/state/{session_id}/new-tile", response_model=StateSnapshot)
def new_tile(session_id: str) -> StateSnapshot:
    flow_controller.new_tile(session_id)
    return get_state(session_id)

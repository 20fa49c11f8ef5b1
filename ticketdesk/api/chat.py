# Role: Thin HTTP adapter for the chat endpoint. Validates request/response shapes and delegates the entire
# conversation turn to FlowController (business logic lives in core, not in the API layer).

from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ticketdesk.api.deps import flow_controller

router = APIRouter(tags=["chat"])


class ChatRequest(BaseModel):
    session_id: str = Field(min_length=1)
    user_message: str


class ChatResponse(BaseModel):
    session_id: str
    assistant_message: str
    intent_kind: Optional[str] = None
    phase: Optional[str] = None
    awaiting_field: Optional[str] = None
    actions: List[str] = []
    tile_closed: bool = False


def to_response(result) -> ChatResponse:
    return ChatResponse(
        session_id=result.session_id,
        assistant_message=result.assistant_message,
        intent_kind=result.intent_kind,
        phase=result.phase,
        awaiting_field=result.awaiting_field,
        actions=list(result.actions),
        tile_closed=result.tile_closed,
    )


@router.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest) -> ChatResponse:
    # 1) Forward (session_id, user_message) to the orchestrator
    # 2) Return the assistant text plus the open question / buttons for UI clients
    result = flow_controller.handle_turn(req.session_id, req.user_message)
    return to_response(result)

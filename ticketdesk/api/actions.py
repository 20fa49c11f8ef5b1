# Role: HTTP adapter for button actions (confirm / cancel / edit / select:<id> / create_counterparty).
# Unknown action names are a client error; everything else is handled conversationally by FlowController.

from typing import Any, Dict

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ticketdesk.api.chat import ChatResponse, to_response
from ticketdesk.api.deps import flow_controller

router = APIRouter(tags=["chat"])


class ActionRequest(BaseModel):
    session_id: str = Field(min_length=1)
    action: str
    updates: Dict[str, Any] = Field(default_factory=dict)


@router.post("/chat/action", response_model=ChatResponse)
def chat_action(req: ActionRequest) -> ChatResponse:
    try:
        result = flow_controller.handle_action(req.session_id, req.action, req.updates)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return to_response(result)

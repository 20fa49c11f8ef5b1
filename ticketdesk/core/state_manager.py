# Role: In-memory session store. Owns lifecycle of ConversationState objects:
# create/get by session_id, append messages, manage tile boundaries, bound history, and cleanup expired sessions.

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import ticketdesk.config as config
from ticketdesk.models.message import TILE_SEPARATOR, Message
from ticketdesk.models.state import ConversationState
from ticketdesk.utils.history import tile_messages, tile_user_texts


class StateManager:
    def __init__(self, max_history_messages: Optional[int] = None, session_ttl_minutes: int = 60) -> None:
        self._states: Dict[str, ConversationState] = {}
        self._max_history_messages = max_history_messages or config.MAX_HISTORY_MESSAGES
        self._ttl = timedelta(minutes=session_ttl_minutes)

    def get(self, session_id: str) -> Optional[ConversationState]:
        return self._states.get(session_id)

    def get_or_create(self, session_id: str) -> ConversationState:
        # Reuse existing state or initialize a fresh one.
        state = self._states.get(session_id)
        if state is None:
            state = ConversationState(session_id=session_id)
            self._states[session_id] = state
        return state

    def add_message(
        self,
        session_id: str,
        role: str,
        content: str,
        intent_kind: Optional[str] = None,
        actions: Optional[Sequence[str]] = None,
    ) -> ConversationState:
        # 1) Append message
        # 2) Update last-seen timestamp
        # 3) Trim to last N messages, shifting the tile boundary with the log
        state = self.get_or_create(session_id)
        state.conversation_history.append(
            Message(role=role, content=content, intent_kind=intent_kind, actions=list(actions or []))
        )
        state.updated_at = datetime.now(timezone.utc)
        self._trim(state)
        return state

    def _trim(self, state: ConversationState) -> None:
        overflow = len(state.conversation_history) - self._max_history_messages
        if overflow <= 0:
            return
        state.conversation_history = state.conversation_history[overflow:]
        state.tile_start = max(0, state.tile_start - overflow)

    def start_new_tile(self, session_id: str) -> ConversationState:
        # Key line: history is never truncated; the boundary index moves past the sentinel.
        state = self.get_or_create(session_id)
        state.conversation_history.append(Message(role="system", content=TILE_SEPARATOR))
        state.tile_start = len(state.conversation_history)
        state.clarification = None
        state.updated_at = datetime.now(timezone.utc)
        self._trim(state)
        return state

    def tile_messages(self, state: ConversationState) -> List[Message]:
        return tile_messages(state.conversation_history, state.tile_start)

    def recent_user_messages(self, state: ConversationState, exclude_last: bool = True) -> List[str]:
        # The message being classified is already in the log; the classifier only wants what came before it.
        texts = tile_user_texts(state.conversation_history, state.tile_start)
        if exclude_last and texts:
            last = state.conversation_history[-1] if state.conversation_history else None
            if last is not None and last.role == "user":
                texts = texts[:-1]
        return texts

    def increment_turn(self, state: ConversationState) -> None:
        state.turn_count += 1
        state.updated_at = datetime.now(timezone.utc)

    def cleanup_expired(self) -> int:
        # Role: drop inactive sessions to avoid unbounded growth (best for long-running servers).
        now = datetime.now(timezone.utc)
        to_delete = [sid for sid, st in self._states.items() if (now - st.updated_at) > self._ttl]
        for sid in to_delete:
            del self._states[sid]
        return len(to_delete)

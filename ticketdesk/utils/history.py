# Role: Tile-aware views over the append-only conversation log. Only messages after the current tile boundary
# are context for classification, and the tile sentinel itself is never part of any view.

from __future__ import annotations

from typing import List, Sequence

from ticketdesk.models.message import Message


def tile_messages(history: Sequence[Message], tile_start: int) -> List[Message]:
    start = max(0, min(tile_start, len(history)))
    return [m for m in history[start:] if not m.is_tile_separator]


def tile_user_texts(history: Sequence[Message], tile_start: int, max_lookback: int = 10) -> List[str]:
    # Oldest first, so callers can walk them with reversed().
    texts = [m.content for m in tile_messages(history, tile_start) if m.role == "user" and m.content.strip()]
    return texts[-max_lookback:]


def visible_messages(history: Sequence[Message]) -> List[Message]:
    return [m for m in history if not m.is_tile_separator]

# Role: Recovery path when a turn breaks unexpectedly. Deterministic only: if a question is open, ask it again;
# otherwise drop whatever was half-built and return a generic friendly message.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ticketdesk.models.state import ConversationState, Phase
from ticketdesk.utils.clarification import (
    build_clarification_question,
    build_disambiguation_question,
    build_not_found_question,
)
from ticketdesk.utils.summaries import build_confirmation_summary

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Something went wrong on my end while handling that. Could you try again?"


@dataclass(frozen=True)
class FallbackResult:
    message: str
    kept_state: bool
    pending_field: Optional[str] = None


class FallbackHandler:
    def recover(self, *, state: ConversationState, user_message: str, error: Optional[str] = None) -> FallbackResult:
        # 1) Awaiting a field -> re-ask that field
        # 2) Awaiting a choice -> show the same choices (or the create offer) again
        # 3) Ready to confirm -> show the summary again
        # 4) Otherwise -> generic message; conversation goes back to Idle
        logger.warning("recovering from turn error %s (message=%r)", error, user_message)
        clar = state.clarification

        if clar is None:
            return FallbackResult(message=GENERIC_ERROR, kept_state=False)

        try:
            if clar.phase == Phase.AWAITING_FIELD and clar.awaiting_field is not None:
                question = build_clarification_question(
                    [clar.awaiting_field], clar.intent_kind, clar.partial_payload, state.banks
                )
                return FallbackResult(message=question, kept_state=True, pending_field=clar.awaiting_field.value)

            if clar.phase == Phase.AWAITING_DISAMBIGUATION and clar.disambiguation_field is not None:
                typed = clar.unresolved_name or ""
                if clar.candidates:
                    question = build_disambiguation_question(clar.disambiguation_field, typed, clar.candidates)
                else:
                    question = build_not_found_question(clar.disambiguation_field, typed, state.banks)
                return FallbackResult(
                    message=question, kept_state=True, pending_field=clar.disambiguation_field.value
                )

            if clar.phase == Phase.READY_TO_CONFIRM:
                summary = build_confirmation_summary(clar.intent_kind, clar.partial_payload)
                return FallbackResult(message=summary, kept_state=True)
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning("could not rebuild the pending question: %s", e)

        state.clarification = None
        return FallbackResult(message=GENERIC_ERROR, kept_state=False)

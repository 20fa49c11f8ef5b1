# Role: Rule-based intent classification + structured extraction into typed drafts.
# Walks the ordered matcher table; the first result at or above the confidence threshold wins, otherwise unknown.

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

import ticketdesk.config as config
from ticketdesk.nlu.extractors import Utterance
from ticketdesk.nlu.matchers import MATCHERS, UNKNOWN, IntentResult, MatchContext, Matcher

logger = logging.getLogger(__name__)

__all__ = ["IntentClassifier", "IntentResult"]


class IntentClassifier:
    """
    Deterministic classifier over a fixed priority list of matchers.

    Contract:
    - Empty or whitespace-only input is unknown with confidence 0.
    - Only the highest-priority matcher that fires is used; lower ones are not consulted.
    - Matchers never raise for odd input; they return None when their shape is absent.
    """

    THRESHOLD = 0.5

    def __init__(self, matchers: Optional[Sequence[Tuple[str, Matcher]]] = None) -> None:
        self.matchers: List[Tuple[str, Matcher]] = list(matchers or MATCHERS)

    def classify(self, user_message: str, recent_user_messages: Optional[Sequence[str]] = None) -> IntentResult:
        # 1) Reject empty input
        # 2) Try matchers in priority order, each on a fresh token view
        # 3) First result >= THRESHOLD wins
        if not user_message or not user_message.strip():
            return UNKNOWN

        ctx = MatchContext(recent_user_messages=tuple(recent_user_messages or ()))

        for name, matcher in self.matchers:
            result = matcher(Utterance(user_message), ctx)
            if result is None:
                continue
            if result.confidence < self.THRESHOLD:
                if config.DEBUG:
                    logger.debug("matcher %s below threshold (%.2f)", name, result.confidence)
                continue

            if config.DEBUG:
                logger.debug(
                    "INTENT %s via %s conf=%.2f missing=%s payload=%s",
                    result.kind.value,
                    name,
                    result.confidence,
                    [m.value for m in result.missing_fields],
                    result.payload,
                )
            return result

        if config.DEBUG:
            logger.debug("INTENT unknown for %r", user_message)
        return UNKNOWN

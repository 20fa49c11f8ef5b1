# Role: Routing brain. Given (intent kind + draft + entity resolutions), decide the next step of the
# clarification loop: ask one field, disambiguate, offer to create a counterparty, confirm, or run a query.

from __future__ import annotations

from typing import Dict, Optional

from ticketdesk.core.validator import missing_fields
from ticketdesk.models.decision import Action, Decision
from ticketdesk.models.entities import Resolution
from ticketdesk.models.intent import DRAFT_KINDS, QUERY_KINDS, IntentKind, MissingField

# Reference fields are checked in this order, before any plain missing field.
REFERENCE_ORDER = (MissingField.COUNTERPARTY, MissingField.EVENT, MissingField.BANK)


class DecisionLogic:
    def decide(
        self,
        kind: IntentKind,
        draft,
        resolutions: Optional[Dict[MissingField, Resolution]] = None,
    ) -> Decision:
        # 1) A typed name that did not resolve cleanly is settled first
        # 2) Then the first missing field, one question at a time
        # 3) Complete: queries run, drafts go to confirmation
        resolutions = resolutions or {}

        for field in REFERENCE_ORDER:
            resolution = resolutions.get(field)
            if resolution is None or resolution.status == "resolved":
                continue
            return self._decide_reference(kind, field, resolution)

        missing = missing_fields(kind, draft)
        if missing:
            return Decision(
                action=Action.ASK_FIELD,
                field=missing[0],
                missing_fields=missing,
                notes=f"{kind.value}: missing {', '.join(m.value for m in missing)}",
            )

        if kind in QUERY_KINDS:
            return Decision(action=Action.RUN_QUERY, notes=f"{kind.value} complete -> run query")

        return Decision(action=Action.CONFIRM, notes=f"{kind.value} complete -> confirm")

    def _decide_reference(self, kind: IntentKind, field: MissingField, resolution: Resolution) -> Decision:
        typed = resolution.query

        if resolution.status == "ambiguous":
            return Decision(
                action=Action.DISAMBIGUATE,
                field=field,
                candidates=resolution.candidates,
                unresolved_name=typed,
                notes=f"{len(resolution.candidates)} candidates for {field.value} {typed!r}",
            )

        if resolution.status == "stale":
            return Decision(
                action=Action.ASK_FIELD,
                field=field,
                notes=f"lookup for {field.value} {typed!r} was superseded",
            )

        # not_found: only a draft that records money against a counterparty offers creation
        if field == MissingField.COUNTERPARTY and kind in DRAFT_KINDS and kind != IntentKind.CREATE_COUNTERPARTY:
            return Decision(
                action=Action.OFFER_CREATE,
                field=field,
                unresolved_name=typed,
                notes=f"counterparty {typed!r} not found -> offer create",
            )

        if field == MissingField.EVENT:
            warning = f'No event found for "{typed}".'
        elif field == MissingField.BANK:
            warning = f'I couldn\'t find a bank account called "{typed}".'
        else:
            warning = f'I couldn\'t find a counterparty called "{typed}".'
        return Decision(
            action=Action.ASK_FIELD,
            field=field,
            unresolved_name=typed,
            warning=warning,
            notes=f"{field.value} {typed!r} not found -> ask again",
        )

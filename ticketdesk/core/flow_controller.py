# Role: Orchestrator for one conversation turn. It glues together:
# state management, intent classification, entity resolution, the clarification state machine,
# the execution gate, directory refresh, and persistence of the transcript.

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional

import ticketdesk.config as config
from ticketdesk.core.decision_logic import DecisionLogic
from ticketdesk.core.entity_resolver import EntityResolver, resolve_directory
from ticketdesk.core.execution_gate import ExecutionGate, record_id
from ticketdesk.core.fallback_handler import FallbackHandler
from ticketdesk.core.state_manager import StateManager
from ticketdesk.core.validator import Validator, unresolved_references
from ticketdesk.models.decision import Action, Decision
from ticketdesk.models.drafts import CounterpartyDraft, QueryDraft, TransactionDraft
from ticketdesk.models.entities import DirectoryEntry, EntityCandidate, Resolution
from ticketdesk.models.intent import DRAFT_KINDS, IntentKind, MissingField, TransactionType
from ticketdesk.models.state import ClarificationState, ConversationState, Phase, SuspendedDraft
from ticketdesk.nlu.intent_classifier import IntentClassifier
from ticketdesk.tools.records_client import RecordsClient
from ticketdesk.utils.clarification import (
    build_clarification_question,
    build_disambiguation_question,
    build_not_found_question,
    not_understood_message,
)
from ticketdesk.utils.field_values import parse_field_value
from ticketdesk.utils.summaries import build_confirmation_summary, format_validation_errors

logger = logging.getLogger(__name__)

GREETINGS = (
    "Hi! What would you like to record? You can tell me about a purchase, a sale, or a payment.",
    "Hello! Tell me what happened, e.g. \"Bought 2 tickets from Benny for Arsenal vs Spurs at £100 each\".",
    "Hey there! I can log purchases, sales and payments, or look up a profit or a balance for you.",
)

CANCEL_MESSAGE = "Action cancelled."
NOTHING_TO_CONFIRM = "There's nothing waiting for confirmation right now."

_YES = {"yes", "y", "yep", "yeah", "yup", "sure", "ok", "okay", "confirm", "confirmed", "go ahead", "do it", "save", "save it"}
_NO = {"no", "n", "nope", "nah"}
_CANCEL = {"cancel", "stop", "abort", "never mind", "nevermind", "forget it"}
_CREATE_WORDS = {"new", "create", "create new", "add", "add new", "new counterparty", "create counterparty"}

CONFIRM_ACTIONS = ["confirm", "edit", "cancel"]


@dataclass(frozen=True)
class TurnResponse:
    session_id: str
    assistant_message: str
    intent_kind: Optional[str] = None
    phase: Optional[str] = None
    awaiting_field: Optional[str] = None
    actions: List[str] = field(default_factory=list)
    tile_closed: bool = False


@dataclass
class _Reply:
    text: str
    actions: List[str] = field(default_factory=list)
    close_tile: bool = False
    intent_kind: Optional[IntentKind] = None


def _clean_reply(text: str) -> str:
    return re.sub(r"\s+", " ", (text or "").strip().lower()).strip(" .!")


def _apply_candidate(draft, target: MissingField, candidate: EntityCandidate) -> None:
    # Key line: the canonical directory/catalog name replaces what the operator typed.
    if target == MissingField.COUNTERPARTY:
        draft.counterparty_id = candidate.id
        draft.counterparty_name = candidate.display_name
    elif target == MissingField.BANK:
        draft.bank_id = candidate.id
        draft.bank_name = candidate.display_name
        if isinstance(draft, TransactionDraft) and draft.transaction_type == TransactionType.BANK_CHARGE:
            draft.counterparty_name = candidate.display_name
    elif target == MissingField.EVENT:
        draft.event_id = candidate.id
        draft.event_name = candidate.display_name
        if isinstance(draft, TransactionDraft):
            draft.event_date = candidate.date


def _clear_reference(draft, target: MissingField) -> None:
    if target == MissingField.COUNTERPARTY and hasattr(draft, "counterparty_id"):
        draft.counterparty_id = None
    elif target == MissingField.BANK and isinstance(draft, TransactionDraft):
        draft.bank_id = None
    elif target == MissingField.EVENT and hasattr(draft, "event_id"):
        draft.event_id = None
        draft.event_name = None
        if isinstance(draft, TransactionDraft):
            draft.event_date = None


class FlowController:
    def __init__(
        self,
        state_manager: Optional[StateManager] = None,
        intent_classifier: Optional[IntentClassifier] = None,
        entity_resolver: Optional[EntityResolver] = None,
        validator: Optional[Validator] = None,
        decision_logic: Optional[DecisionLogic] = None,
        records_client: Optional[RecordsClient] = None,
        execution_gate: Optional[ExecutionGate] = None,
        fallback_handler: Optional[FallbackHandler] = None,
    ) -> None:
        # Key line: dependencies are injectable for testing/mocking.
        self.state_manager = state_manager or StateManager()
        self.intent_classifier = intent_classifier or IntentClassifier()
        self.entity_resolver = entity_resolver or EntityResolver()
        self.validator = validator or Validator()
        self.decision_logic = decision_logic or DecisionLogic()
        self.records_client = records_client or RecordsClient()
        self.execution_gate = execution_gate or ExecutionGate(records_client=self.records_client, validator=self.validator)
        self.fallback_handler = fallback_handler or FallbackHandler()

    # -----------------------------
    # Directories
    # -----------------------------

    def refresh_directories(self, state: ConversationState) -> None:
        # Key line: a failed refresh keeps the previous snapshot.
        vendors = self.records_client.list_vendors()
        banks = self.records_client.list_banks()
        if vendors.ok:
            state.vendors = list(vendors.data)
        else:
            logger.warning("vendor directory refresh failed: %s", vendors.error)
        if banks.ok:
            state.banks = list(banks.data)
        else:
            logger.warning("bank directory refresh failed: %s", banks.error)
        state.directories_loaded = vendors.ok and banks.ok

    def _ensure_directories(self, state: ConversationState) -> None:
        if not state.directories_loaded:
            self.refresh_directories(state)

    # -----------------------------
    # Public entry points
    # -----------------------------

    def handle_turn(self, session_id: str, user_message: str) -> TurnResponse:
        # 1) Load state (and directories on first use)
        # 2) Persist user message
        # 3) Route by phase: Idle -> classify; AwaitingField -> field value; AwaitingDisambiguation -> choice;
        #    ReadyToConfirm -> yes/no or a new request
        # 4) Fallback on unexpected errors
        # 5) Persist assistant message; close the tile after a finished action
        state = self.state_manager.get_or_create(session_id)
        self._ensure_directories(state)
        self.state_manager.add_message(session_id, role="user", content=user_message)
        self.state_manager.increment_turn(state)

        try:
            reply = self._route_text(state, user_message)
        except Exception as e:
            logger.exception("turn failed for session %s", session_id)
            fallback = self.fallback_handler.recover(state=state, user_message=user_message, error=repr(e))
            reply = _Reply(text=fallback.message)

        return self._finish(state, reply, user_message)

    def handle_action(self, session_id: str, action: str, updates: Optional[Dict[str, Any]] = None) -> TurnResponse:
        """
        Button-style actions: confirm, cancel, edit (with field updates), select:<candidate id>,
        create_counterparty. Raises ValueError for an action name it does not know.
        """
        name = (action or "").strip()
        updates = updates or {}

        if name == "confirm":
            handler = self._confirm
        elif name == "cancel":
            handler = self._cancel
        elif name == "edit":
            handler = partial(self._edit, updates=updates)
        elif name.startswith("select:"):
            candidate_id = name.split(":", 1)[1]
            handler = partial(self._select, candidate_id=candidate_id)
        elif name == "create_counterparty":
            handler = partial(self._create_counterparty, updates=updates)
        else:
            raise ValueError(f"Unknown action: {action}")

        state = self.state_manager.get_or_create(session_id)
        self._ensure_directories(state)
        self.state_manager.increment_turn(state)

        try:
            reply = handler(state)
        except Exception as e:
            logger.exception("action %s failed for session %s", name, session_id)
            fallback = self.fallback_handler.recover(state=state, user_message=name, error=repr(e))
            reply = _Reply(text=fallback.message)

        return self._finish(state, reply, f"[{name}]")

    def new_tile(self, session_id: str) -> ConversationState:
        self.entity_resolver.registry.cancel_prefix(f"{session_id}:")
        return self.state_manager.start_new_tile(session_id)

    def _finish(self, state: ConversationState, reply: _Reply, user_message: str) -> TurnResponse:
        clar = state.clarification
        intent_kind = reply.intent_kind or (clar.intent_kind if clar else None)

        if config.DEBUG:
            logger.debug("--- FLOW DEBUG ---")
            logger.debug("SESSION: %s TURN: %s", state.session_id, state.turn_count)
            logger.debug("USER MESSAGE: %s", user_message)
            logger.debug("INTENT: %s", intent_kind.value if intent_kind else None)
            logger.debug("PHASE: %s", clar.phase.value if clar else "idle")
            if clar is not None:
                logger.debug("AWAITING: %s", clar.awaiting_field.value if clar.awaiting_field else None)
                logger.debug("DRAFT: %s", clar.partial_payload.model_dump())
                if clar.parent is not None:
                    logger.debug("SUSPENDED: %s", clar.parent.intent_kind.value)
            logger.debug("ACTIONS: %s CLOSE TILE: %s", reply.actions, reply.close_tile)
            logger.debug("------------------")

        self.state_manager.add_message(
            state.session_id,
            role="assistant",
            content=reply.text,
            intent_kind=intent_kind.value if intent_kind else None,
            actions=reply.actions,
        )
        if reply.close_tile:
            self.new_tile(state.session_id)
            clar = None
        pending = (clar.awaiting_field or clar.disambiguation_field) if clar else None

        return TurnResponse(
            session_id=state.session_id,
            assistant_message=reply.text,
            intent_kind=intent_kind.value if intent_kind else None,
            phase=clar.phase.value if clar else None,
            awaiting_field=pending.value if pending else None,
            actions=reply.actions,
            tile_closed=reply.close_tile,
        )

    # -----------------------------
    # Text routing
    # -----------------------------

    def _route_text(self, state: ConversationState, text: str) -> _Reply:
        clar = state.clarification
        cleaned = _clean_reply(text)

        if clar is not None and cleaned in _CANCEL:
            return self._cancel(state)

        if clar is None:
            return self._new_request(state, text)

        if clar.phase == Phase.AWAITING_FIELD:
            return self._field_reply(state, text)

        if clar.phase == Phase.AWAITING_DISAMBIGUATION:
            return self._disambiguation_reply(state, text)

        # ReadyToConfirm
        if cleaned in _YES:
            return self._confirm(state)
        if cleaned in _NO:
            return self._cancel(state)
        return self._new_request(state, text)

    def _new_request(self, state: ConversationState, text: str) -> _Reply:
        # 1) Classify with the current tile as context
        # 2) Greeting / unknown never touch the open draft
        # 3) Anything else replaces it
        recent = self.state_manager.recent_user_messages(state)
        result = self.intent_classifier.classify(text, recent)

        if result.kind == IntentKind.GREETING:
            return _Reply(text=GREETINGS[state.turn_count % len(GREETINGS)], intent_kind=IntentKind.GREETING)

        if result.kind == IntentKind.UNKNOWN or result.payload is None:
            return _Reply(text=not_understood_message(), intent_kind=IntentKind.UNKNOWN)

        if state.clarification is not None:
            self.entity_resolver.registry.cancel_prefix(f"{state.session_id}:")
        state.clarification = None
        return self._advance(state, result.kind, result.payload, auto_select_event=True)

    def _field_reply(self, state: ConversationState, text: str) -> _Reply:
        # Key line: the reply is read only as the awaited field; it is never re-classified.
        clar = state.clarification
        target = clar.awaiting_field
        draft = clar.partial_payload
        updates = parse_field_value(target, text)

        if updates is None:
            question = build_clarification_question([target], clar.intent_kind, draft, state.banks)
            return _Reply(text=f"Sorry, I didn't catch that. {question}")

        _clear_reference(draft, target)
        if target == MissingField.BANK and isinstance(draft, TransactionDraft):
            if draft.transaction_type == TransactionType.BANK_CHARGE:
                updates["counterparty_name"] = updates.get("bank_name")
        draft.apply_updates(updates)
        return self._advance(state, clar.intent_kind, draft, auto_select_event=False, parent=clar.parent)

    def _disambiguation_reply(self, state: ConversationState, text: str) -> _Reply:
        clar = state.clarification
        target = clar.disambiguation_field
        cleaned = _clean_reply(text)

        if target == MissingField.COUNTERPARTY and self._can_nest_create(clar):
            if cleaned in _CREATE_WORDS or (not clar.candidates and cleaned in _YES):
                return self._start_nested_create(state)

        candidate = self._pick_candidate(clar.candidates, text)
        if candidate is not None:
            return self._choose(state, candidate)

        # Anything else is a corrected spelling / new phrase for the same field.
        updates = parse_field_value(target, text)
        if updates is None:
            return _Reply(text=self._disambiguation_text(state, clar), actions=self._disambiguation_actions(clar))

        draft = clar.partial_payload
        _clear_reference(draft, target)
        draft.apply_updates(updates)
        return self._advance(state, clar.intent_kind, draft, auto_select_event=False, parent=clar.parent)

    @staticmethod
    def _pick_candidate(candidates: List[EntityCandidate], text: str) -> Optional[EntityCandidate]:
        # 1) "2" / "#2" / "option 2"
        # 2) exact display name
        # 3) a single containment match
        cleaned = _clean_reply(text)
        if not candidates or not cleaned:
            return None

        m = re.fullmatch(r"(?:option\s*|number\s*|#)?(\d{1,2})", cleaned)
        if m:
            index = int(m.group(1)) - 1
            return candidates[index] if 0 <= index < len(candidates) else None

        exact = [c for c in candidates if c.display_name.lower() == cleaned]
        if len(exact) == 1:
            return exact[0]

        partial = [c for c in candidates if cleaned in c.display_name.lower()]
        if len(partial) == 1:
            return partial[0]
        return None

    # -----------------------------
    # State machine core
    # -----------------------------

    def _resolve_references(
        self, state: ConversationState, kind: IntentKind, draft, auto_select_event: bool
    ) -> Dict[MissingField, Resolution]:
        resolutions: Dict[MissingField, Resolution] = {}
        for target in unresolved_references(kind, draft):
            if target == MissingField.COUNTERPARTY:
                resolution = self.entity_resolver.resolve_counterparty(draft.counterparty_name, state.vendors)
            elif target == MissingField.BANK:
                resolution = self.entity_resolver.resolve_bank(draft.bank_name, state.banks)
            else:
                resolution = self.entity_resolver.resolve_event(
                    draft.event_query,
                    auto_select=auto_select_event,
                    lookup_key=f"{state.session_id}:event",
                )

            if resolution.selected is not None:
                _apply_candidate(draft, target, resolution.selected)

            if config.DEBUG:
                logger.debug(
                    "RESOLVE %s %r -> %s (%d candidates)",
                    target.value,
                    resolution.query,
                    resolution.status,
                    len(resolution.candidates),
                )
            resolutions[target] = resolution
        return resolutions

    def _advance(
        self,
        state: ConversationState,
        kind: IntentKind,
        draft,
        *,
        auto_select_event: bool,
        parent: Optional[SuspendedDraft] = None,
    ) -> _Reply:
        resolutions = self._resolve_references(state, kind, draft, auto_select_event)
        decision = self.decision_logic.decide(kind, draft, resolutions)

        if config.DEBUG:
            logger.debug(
                "DECISION action=%s field=%s notes=%s",
                decision.action.value,
                decision.field.value if decision.field else None,
                decision.notes,
            )

        return self._apply_decision(state, kind, draft, decision, parent)

    def _apply_decision(
        self,
        state: ConversationState,
        kind: IntentKind,
        draft,
        decision: Decision,
        parent: Optional[SuspendedDraft],
    ) -> _Reply:
        if decision.action == Action.ASK_FIELD:
            state.clarification = ClarificationState(
                phase=Phase.AWAITING_FIELD,
                intent_kind=kind,
                partial_payload=draft,
                awaiting_field=decision.field,
                parent=parent,
            )
            if decision.warning and decision.field in {MissingField.BANK, MissingField.EVENT}:
                text = build_not_found_question(decision.field, decision.unresolved_name or "", state.banks)
            else:
                text = build_clarification_question([decision.field], kind, draft, state.banks)
                if decision.warning:
                    text = f"{decision.warning} {text}"
            return _Reply(text=text, actions=["cancel"], intent_kind=kind)

        if decision.action in {Action.DISAMBIGUATE, Action.OFFER_CREATE}:
            state.clarification = ClarificationState(
                phase=Phase.AWAITING_DISAMBIGUATION,
                intent_kind=kind,
                partial_payload=draft,
                disambiguation_field=decision.field,
                candidates=decision.candidates,
                unresolved_name=decision.unresolved_name,
                parent=parent,
            )
            clar = state.clarification
            return _Reply(
                text=self._disambiguation_text(state, clar),
                actions=self._disambiguation_actions(clar),
                intent_kind=kind,
            )

        if decision.action == Action.RUN_QUERY:
            return self._run_query(state, kind, draft)

        # CONFIRM
        state.clarification = ClarificationState(
            phase=Phase.READY_TO_CONFIRM,
            intent_kind=kind,
            partial_payload=draft,
            parent=parent,
        )
        errors = self.execution_gate.check(kind, draft)
        if errors:
            return _Reply(text=format_validation_errors(errors), actions=["edit", "cancel"], intent_kind=kind)
        return _Reply(
            text=build_confirmation_summary(kind, draft, bank_balance=self._bank_balance(state, draft)),
            actions=list(CONFIRM_ACTIONS),
            intent_kind=kind,
        )

    def _disambiguation_text(self, state: ConversationState, clar: ClarificationState) -> str:
        typed = clar.unresolved_name or ""
        if clar.candidates:
            return build_disambiguation_question(clar.disambiguation_field, typed, clar.candidates)
        return build_not_found_question(clar.disambiguation_field, typed, state.banks)

    def _disambiguation_actions(self, clar: ClarificationState) -> List[str]:
        actions = [f"select:{c.id}" for c in clar.candidates]
        if clar.disambiguation_field == MissingField.COUNTERPARTY and self._can_nest_create(clar):
            actions.append("create_counterparty")
        actions.append("cancel")
        return actions

    @staticmethod
    def _can_nest_create(clar: ClarificationState) -> bool:
        return clar.intent_kind in DRAFT_KINDS and clar.intent_kind != IntentKind.CREATE_COUNTERPARTY

    @staticmethod
    def _bank_balance(state: ConversationState, draft) -> Optional[float]:
        if not isinstance(draft, TransactionDraft) or not draft.bank_id:
            return None
        for bank in state.banks:
            if bank.id == draft.bank_id:
                return bank.balance
        return None

    def _choose(self, state: ConversationState, candidate: EntityCandidate) -> _Reply:
        clar = state.clarification
        draft = clar.partial_payload
        _apply_candidate(draft, clar.disambiguation_field, candidate)
        return self._advance(state, clar.intent_kind, draft, auto_select_event=False, parent=clar.parent)

    def _start_nested_create(self, state: ConversationState, updates: Optional[Dict[str, Any]] = None) -> _Reply:
        # Key line: the current draft is suspended, not discarded; creating the counterparty resumes it.
        clar = state.clarification
        parent = SuspendedDraft(intent_kind=clar.intent_kind, partial_payload=clar.partial_payload)
        name = clar.unresolved_name or getattr(clar.partial_payload, "counterparty_name", None)
        draft = CounterpartyDraft(name=name)
        draft.apply_updates(updates or {})
        state.clarification = None
        return self._advance(state, IntentKind.CREATE_COUNTERPARTY, draft, auto_select_event=False, parent=parent)

    def _run_query(self, state: ConversationState, kind: IntentKind, draft: QueryDraft) -> _Reply:
        result = self.execution_gate.run_query(draft, state.vendors)
        state.clarification = None
        return _Reply(text=result.message, close_tile=result.ok, intent_kind=kind)

    # -----------------------------
    # Actions
    # -----------------------------

    def _cancel(self, state: ConversationState) -> _Reply:
        self.entity_resolver.registry.cancel_prefix(f"{state.session_id}:")
        state.clarification = None
        return _Reply(text=CANCEL_MESSAGE)

    def _confirm(self, state: ConversationState) -> _Reply:
        # 1) Gate re-validates; failure keeps the draft for editing
        # 2) Backend failure -> friendly message, draft dropped, Idle
        # 3) Success -> refresh directories; resume a suspended draft or close the tile
        clar = state.clarification
        if clar is None or clar.phase != Phase.READY_TO_CONFIRM:
            return _Reply(text=NOTHING_TO_CONFIRM)

        kind = clar.intent_kind
        result = self.execution_gate.execute(kind, clar.partial_payload)

        if result.validation_failed:
            return _Reply(text=format_validation_errors(result.errors), actions=["edit", "cancel"], intent_kind=kind)

        if not result.ok:
            state.clarification = None
            return _Reply(text=result.message, intent_kind=kind)

        if result.mutated:
            self.refresh_directories(state)

        if kind == IntentKind.CREATE_COUNTERPARTY and clar.parent is not None:
            return self._resume_parent(state, clar, result.data, result.message)

        state.clarification = None
        return _Reply(text=result.message, close_tile=True, intent_kind=kind)

    def _resume_parent(self, state: ConversationState, clar: ClarificationState, data: Any, message: str) -> _Reply:
        created: CounterpartyDraft = clar.partial_payload
        new_id = record_id(data)

        if new_id is not None and not any(v.id == new_id for v in state.vendors):
            state.vendors.append(DirectoryEntry(id=new_id, name=created.name or ""))
        if new_id is None:
            match = resolve_directory(created.name or "", state.vendors)
            new_id = match.selected.id if match.selected else None

        parent = clar.parent
        draft = parent.partial_payload
        draft.counterparty_name = created.name
        draft.counterparty_id = new_id
        state.clarification = None

        resumed = self._advance(state, parent.intent_kind, draft, auto_select_event=False)
        return _Reply(text=f"{message}\n\n{resumed.text}", actions=resumed.actions, intent_kind=parent.intent_kind)

    def _edit(self, state: ConversationState, updates: Dict[str, Any]) -> _Reply:
        clar = state.clarification
        if clar is None:
            return _Reply(text=NOTHING_TO_CONFIRM)

        draft = clar.partial_payload
        if "counterparty_name" in updates or "name" in updates:
            _clear_reference(draft, MissingField.COUNTERPARTY)
        if "bank_name" in updates:
            _clear_reference(draft, MissingField.BANK)
        if "event_query" in updates:
            _clear_reference(draft, MissingField.EVENT)
        draft.apply_updates(updates)
        return self._advance(state, clar.intent_kind, draft, auto_select_event=False, parent=clar.parent)

    def _select(self, state: ConversationState, candidate_id: str) -> _Reply:
        clar = state.clarification
        if clar is None or clar.phase != Phase.AWAITING_DISAMBIGUATION:
            return _Reply(text="There's no open choice to make right now.")

        for candidate in clar.candidates:
            if candidate.id == candidate_id:
                return self._choose(state, candidate)

        return _Reply(
            text="That option is no longer available. " + self._disambiguation_text(state, clar),
            actions=self._disambiguation_actions(clar),
        )

    def _create_counterparty(self, state: ConversationState, updates: Dict[str, Any]) -> _Reply:
        clar = state.clarification
        if clar is not None and clar.disambiguation_field == MissingField.COUNTERPARTY and self._can_nest_create(clar):
            return self._start_nested_create(state, updates)

        draft = CounterpartyDraft()
        draft.apply_updates(updates)
        state.clarification = None
        return self._advance(state, IntentKind.CREATE_COUNTERPARTY, draft, auto_select_event=False)

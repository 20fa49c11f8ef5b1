# Role: Confirmation/execution gate. Re-validates a confirmed draft, builds the submission payload (money rounded
# here and nowhere earlier), dispatches to the records adapter, and turns backend errors into friendly text.
# Never retries: a failed submission is reported once and the caller drops the draft.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import ticketdesk.config as config
from ticketdesk.core.validator import Validator
from ticketdesk.models.drafts import CounterpartyDraft, QueryDraft, TransactionDraft
from ticketdesk.models.entities import DirectoryEntry
from ticketdesk.models.intent import IntentKind, ManualCategory, TransactionType
from ticketdesk.nlu.amounts import round_money
from ticketdesk.tools.records_client import RecordResult, RecordsClient
from ticketdesk.utils.summaries import format_profit_loss, format_transactions_summary, format_vendor_balance

logger = logging.getLogger(__name__)

SUCCESS_MESSAGES = {
    IntentKind.PURCHASE: "✅ Purchase created successfully!",
    IntentKind.ORDER: "✅ Order created successfully!",
    IntentKind.MANUAL_TRANSACTION: "✅ Transaction created successfully!",
    IntentKind.CREATE_COUNTERPARTY: "✅ Counterparty created successfully!",
}

_NOT_FOUND_MESSAGES = {
    IntentKind.PURCHASE: (
        "Hmm, I couldn't find that vendor or event in the system. Could you double-check the names and try again?"
    ),
    IntentKind.ORDER: "I couldn't find that customer or event. Mind checking the details and trying once more?",
    IntentKind.CREATE_COUNTERPARTY: (
        "Looks like there's an issue creating that contact. The name might already exist or there's missing information."
    ),
}

# (substrings, template); first match wins
_ERROR_TEMPLATES = (
    (("already exists", "duplicate"), "Looks like that already exists in the system. Maybe try a different name?"),
    (
        ("invalid", "validation"),
        "Some of the information doesn't look quite right. Could you check the details and try again?",
    ),
    (("required", "missing"), "I'm missing some required information. Let's try filling in all the details again."),
    (
        ("unauthorized", "permission"),
        "Oops, looks like you don't have permission to do that. You might need to check with an admin.",
    ),
    (("network", "connection"), "I'm having trouble connecting right now. Could you try again in a moment?"),
)


def friendly_error(kind: IntentKind, error: Optional[str]) -> str:
    raw = error or "Unknown error"
    low = raw.lower()

    if "not found" in low or "does not exist" in low:
        return _NOT_FOUND_MESSAGES.get(kind, "I couldn't find that in the system. Could you verify the details?")

    for needles, template in _ERROR_TEMPLATES:
        if any(n in low for n in needles):
            return template

    return f"Something went wrong on my end. Here's what I know: {raw}\n\nWant to try again?"


def record_id(data: Any) -> Optional[str]:
    # Backend bodies are either the record itself or {"vendor": {...}} / {"counterparty": {...}}
    if not isinstance(data, dict):
        return None
    if data.get("id") is not None:
        return str(data["id"])
    for key in ("vendor", "counterparty", "record"):
        nested = data.get(key)
        if isinstance(nested, dict) and nested.get("id") is not None:
            return str(nested["id"])
    return None


@dataclass(frozen=True)
class ExecutionResult:
    ok: bool
    message: str
    errors: List[str] = field(default_factory=list)
    validation_failed: bool = False
    data: Any = None
    # True when the backend state changed (directories must be refreshed).
    mutated: bool = False


def _money(value: Optional[float]) -> Optional[float]:
    return round_money(value) if value is not None else None


def build_payload(kind: IntentKind, draft) -> Dict[str, Any]:
    if kind in {IntentKind.PURCHASE, IntentKind.ORDER} and isinstance(draft, TransactionDraft):
        payload: Dict[str, Any] = {
            "game_id": draft.event_id,
            "quantity": draft.quantity,
            "area": draft.area,
            "block": draft.block,
            "row": draft.row,
            "seats": draft.seats,
            "notes": draft.notes,
        }
        if kind == IntentKind.PURCHASE:
            payload.update(
                bought_from=draft.counterparty_name,
                bought_from_vendor_id=draft.counterparty_id,
                cost=_money(draft.total_amount()),
            )
        else:
            payload.update(
                sold_to=draft.counterparty_name,
                sold_to_vendor_id=draft.counterparty_id,
                selling=_money(draft.total_amount()),
                order_number=draft.order_number,
            )
        return payload

    if kind == IntentKind.MANUAL_TRANSACTION and isinstance(draft, TransactionDraft):
        is_bank_charge = draft.transaction_type == TransactionType.BANK_CHARGE
        category = draft.category or ManualCategory.OTHER
        return {
            "vendor_name": draft.counterparty_name or (draft.bank_name if is_bank_charge else None),
            "vendor_id": draft.counterparty_id or (draft.bank_id if is_bank_charge else None),
            "type": "manual",
            "amount": _money(draft.amount),
            "category": category.value,
            "direction": draft.direction,
            "mode": draft.mode,
            "bank_account_id": draft.bank_id if draft.mode == "standard" else None,
            "notes": draft.notes,
        }

    if kind == IntentKind.CREATE_COUNTERPARTY and isinstance(draft, CounterpartyDraft):
        return {"name": draft.name, "phone": draft.phone, "role": draft.role, "email": draft.email}

    raise ValueError(f"Unsupported action: {kind.value}")


class ExecutionGate:
    def __init__(self, records_client: Optional[RecordsClient] = None, validator: Optional[Validator] = None) -> None:
        self.records_client = records_client or RecordsClient()
        self.validator = validator or Validator()

    def check(self, kind: IntentKind, draft) -> List[str]:
        return self.validator.validate_for_submit(kind, draft)

    def _dispatch(self, kind: IntentKind, payload: Dict[str, Any]) -> RecordResult:
        if kind == IntentKind.PURCHASE:
            return self.records_client.create_purchase(payload)
        if kind == IntentKind.ORDER:
            return self.records_client.create_order(payload)
        if kind == IntentKind.MANUAL_TRANSACTION:
            return self.records_client.create_manual_transaction(payload)
        return self.records_client.create_counterparty(payload)

    def execute(self, kind: IntentKind, draft) -> ExecutionResult:
        # 1) Structural validation again (the draft may have been edited since the summary)
        # 2) Build payload + dispatch
        # 3) Map the outcome to a user-facing message
        errors = self.check(kind, draft)
        if errors:
            return ExecutionResult(ok=False, message="", errors=errors, validation_failed=True)

        payload = build_payload(kind, draft)
        if config.DEBUG:
            logger.debug("SUBMIT %s payload=%s", kind.value, payload)

        result = self._dispatch(kind, payload)
        if not result.ok:
            logger.warning("submission of %s failed: %s", kind.value, result.error)
            return ExecutionResult(ok=False, message=friendly_error(kind, result.error), errors=[result.error or ""])

        return ExecutionResult(ok=True, message=SUCCESS_MESSAGES[kind], data=result.data, mutated=True)

    def run_query(self, draft: QueryDraft, vendors: Sequence[DirectoryEntry] = ()) -> ExecutionResult:
        if draft.query_type == "profit":
            name = draft.event_name or draft.event_query or ""
            result = self.records_client.run_profit_loss(name, draft.event_id or "")
            formatter = format_profit_loss
        elif draft.query_type == "balance":
            known = next((v.balance for v in vendors if v.id == draft.counterparty_id), 0.0)
            result = self.records_client.run_vendor_balance(
                draft.counterparty_name or "", draft.counterparty_id or "", known_balance=known
            )
            formatter = format_vendor_balance
        else:
            result = self.records_client.list_transactions()
            formatter = format_transactions_summary

        if not result.ok:
            logger.warning("%s query failed: %s", draft.query_type, result.error)
            return ExecutionResult(ok=False, message=friendly_error(IntentKind.QUERY, result.error))

        return ExecutionResult(ok=True, message=formatter(result.data), data=result.data)

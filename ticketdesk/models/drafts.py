# Role: In-progress payloads produced by the classifier and completed by the clarification loop.
# apply_updates() merges partial field values (from follow-up replies or edit actions) into a draft.

from __future__ import annotations

from typing import Any, ClassVar, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel

from ticketdesk.models.intent import ManualCategory, TransactionType

Direction = Literal["in", "out"]
PaymentMode = Literal["standard", "journal_voucher"]


def _clean_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class _Draft(BaseModel):
    # Fields holding free text; numbers and enums are handled per subclass.
    TEXT_FIELDS: ClassVar[Tuple[str, ...]] = ()

    def apply_updates(self, updates: Dict[str, Any]) -> None:
        # 1) Ignore empty updates
        # 2) Strip strings; skip blanks so a partial update never erases a value
        # 3) Let subclasses coerce typed fields
        if not updates:
            return

        for field in self.TEXT_FIELDS:
            if field in updates:
                cleaned = _clean_str(updates[field])
                if cleaned is not None:
                    setattr(self, field, cleaned)

        self._apply_typed(updates)

    def _apply_typed(self, updates: Dict[str, Any]) -> None:
        return None


class TransactionDraft(_Draft):
    kind: Literal["transaction"] = "transaction"
    transaction_type: TransactionType

    counterparty_name: Optional[str] = None
    counterparty_id: Optional[str] = None

    quantity: Optional[int] = None
    area: Optional[str] = None
    block: Optional[str] = None
    row: Optional[str] = None
    seats: Optional[str] = None

    event_query: Optional[str] = None
    event_id: Optional[str] = None
    event_name: Optional[str] = None
    event_date: Optional[str] = None

    # Key line: kept unrounded; rounding happens when the submission payload is built.
    amount: Optional[float] = None
    per_ticket: bool = False

    direction: Optional[Direction] = None
    category: Optional[ManualCategory] = None
    mode: PaymentMode = "standard"
    bank_name: Optional[str] = None
    bank_id: Optional[str] = None

    order_number: Optional[str] = None
    notes: Optional[str] = None

    TEXT_FIELDS: ClassVar[Tuple[str, ...]] = (
        "counterparty_name",
        "counterparty_id",
        "area",
        "block",
        "row",
        "seats",
        "event_query",
        "event_id",
        "event_name",
        "event_date",
        "bank_name",
        "bank_id",
        "order_number",
        "notes",
    )

    def _apply_typed(self, updates: Dict[str, Any]) -> None:
        quantity = updates.get("quantity")
        if quantity is not None and not isinstance(quantity, bool):
            try:
                self.quantity = int(quantity)
            except (TypeError, ValueError):
                pass

        amount = updates.get("amount")
        if amount is not None and not isinstance(amount, bool):
            try:
                self.amount = float(amount)
            except (TypeError, ValueError):
                pass

        if "per_ticket" in updates:
            self.per_ticket = bool(updates["per_ticket"])

        direction = updates.get("direction")
        if direction in ("in", "out"):
            self.direction = direction

        mode = updates.get("mode")
        if mode in ("standard", "journal_voucher"):
            self.mode = mode

        category = updates.get("category")
        if category:
            try:
                self.category = ManualCategory(category)
            except ValueError:
                pass

    def total_amount(self) -> Optional[float]:
        # Key line: "100 ea" on 2 tickets is a 200 total.
        if self.amount is None:
            return None
        if self.per_ticket and self.quantity:
            return self.amount * self.quantity
        return self.amount


class CounterpartyDraft(_Draft):
    kind: Literal["counterparty"] = "counterparty"
    name: Optional[str] = None
    phone: Optional[str] = None
    role: str = "trader"
    email: Optional[str] = None

    TEXT_FIELDS: ClassVar[Tuple[str, ...]] = ("name", "phone", "role", "email")


class QueryDraft(_Draft):
    kind: Literal["query"] = "query"
    query_type: Literal["profit", "balance", "generic"]
    counterparty_name: Optional[str] = None
    counterparty_id: Optional[str] = None
    event_query: Optional[str] = None
    event_id: Optional[str] = None
    event_name: Optional[str] = None

    TEXT_FIELDS: ClassVar[Tuple[str, ...]] = ("counterparty_name", "counterparty_id", "event_query", "event_id", "event_name")


AnyDraft = Union[TransactionDraft, CounterpartyDraft, QueryDraft]

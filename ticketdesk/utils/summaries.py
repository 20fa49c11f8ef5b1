# Role: Deterministic text for confirmations and query results. Money is shown with the configured symbol;
# fields not yet set show "(not set)" so the operator sees exactly what will be saved.

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import ticketdesk.config as config
from ticketdesk.models.drafts import CounterpartyDraft, TransactionDraft
from ticketdesk.models.intent import IntentKind

NOT_SET = "(not set)"


def format_amount(value: Optional[float]) -> str:
    if value is None:
        return NOT_SET
    sign = "-" if value < 0 else ""
    return f"{sign}{config.CURRENCY_SYMBOL}{abs(float(value)):,.2f}"


def _event_line(draft: TransactionDraft) -> str:
    name = draft.event_name or draft.event_query or NOT_SET
    if draft.event_date:
        return f"Event: {name} ({draft.event_date[:10]})"
    return f"Event: {name}"


def _optional_lines(draft: TransactionDraft) -> List[str]:
    lines: List[str] = []
    if draft.block:
        lines.append(f"Block: {draft.block}")
    if draft.row:
        lines.append(f"Row: {draft.row}")
    if draft.seats:
        lines.append(f"Seats: {draft.seats}")
    if draft.order_number:
        lines.append(f"Order Number: {draft.order_number}")
    if draft.notes:
        lines.append(f"Notes: {draft.notes}")
    return lines


def _price_line(label: str, draft: TransactionDraft) -> str:
    total = draft.total_amount()
    if draft.per_ticket and draft.quantity and draft.amount is not None:
        return f"{label}: {format_amount(total)} ({draft.quantity} × {format_amount(draft.amount)})"
    return f"{label}: {format_amount(total)}"


def build_confirmation_summary(kind: IntentKind, draft, bank_balance: Optional[float] = None) -> str:
    lines: List[str] = []

    if kind == IntentKind.PURCHASE and isinstance(draft, TransactionDraft):
        lines.append("📦 Purchase Details:")
        lines.append(_event_line(draft))
        lines.append(f"Quantity: {draft.quantity or NOT_SET}{' tickets' if draft.quantity else ''}")
        lines.append(f"Area: {draft.area or NOT_SET}")
        lines.append(f"Bought From: {draft.counterparty_name or NOT_SET}")
        lines.append(_price_line("Total Cost", draft))
        lines.extend(_optional_lines(draft))

    elif kind == IntentKind.ORDER and isinstance(draft, TransactionDraft):
        lines.append("🎫 Sale Details:")
        lines.append(_event_line(draft))
        lines.append(f"Quantity: {draft.quantity or NOT_SET}{' tickets' if draft.quantity else ''}")
        lines.append(f"Area: {draft.area or NOT_SET}")
        lines.append(f"Sold To: {draft.counterparty_name or NOT_SET}")
        lines.append(_price_line("Selling Price", draft))
        lines.extend(_optional_lines(draft))

    elif kind == IntentKind.MANUAL_TRANSACTION and isinstance(draft, TransactionDraft):
        direction = {"in": "Money In (Receipt)", "out": "Money Out (Payment)"}.get(draft.direction or "", NOT_SET)
        lines.append("💰 Payment Details:")
        lines.append(f"Vendor/Counterparty: {draft.counterparty_name or NOT_SET}")
        lines.append(f"Amount: {format_amount(draft.amount)}")
        lines.append(f"Direction: {direction}")
        lines.append(f"Category: {draft.category.value if draft.category else NOT_SET}")
        if draft.mode == "standard":
            bank = draft.bank_name or NOT_SET
            if draft.bank_name and bank_balance is not None:
                bank = f"{bank} ({format_amount(bank_balance)})"
            lines.append(f"Bank: {bank}")
        else:
            lines.append("Mode: Journal voucher (no bank movement)")
        if draft.notes:
            lines.append(f"Notes: {draft.notes}")

    elif kind == IntentKind.CREATE_COUNTERPARTY and isinstance(draft, CounterpartyDraft):
        lines.append("👤 Counterparty Details:")
        lines.append(f"Name: {draft.name or NOT_SET}")
        lines.append(f"Phone: {draft.phone or NOT_SET}")
        if draft.role:
            lines.append(f"Role: {draft.role}")
        if draft.email:
            lines.append(f"Email: {draft.email}")

    lines.append("")
    lines.append("Shall I save this? (yes / no)")
    return "\n".join(lines)


def format_validation_errors(errors: Sequence[str]) -> str:
    bullet = "\n".join(f"• {e}" for e in errors)
    return f"I can't save this yet:\n{bullet}\n\nEdit the details and confirm again."


def format_profit_loss(data: Dict[str, Any]) -> str:
    return (
        f"📊 Profit & Loss for {data.get('eventName', 'this event')}\n\n"
        f"Total Records: {data.get('recordCount', 0)}\n"
        f"Total Quantity: {data.get('totalQuantity', 0)} tickets\n"
        f"Total Cost: {format_amount(data.get('totalCost', 0))} (Purchase price)\n"
        f"Target Selling: {format_amount(data.get('targetSelling', 0))} (Asking price)\n"
        f"Projected Profit: {format_amount(data.get('projectedProfit', 0))} (Based on target sell)"
    )


def format_vendor_balance(data: Dict[str, Any]) -> str:
    # Positive balance: they owe you. Negative: you owe them.
    name = data.get("vendorName", "this counterparty")
    balance = float(data.get("balance") or 0)
    totals = data.get("totals") or {}

    if balance > 0:
        interpretation = f"{name} owes you {format_amount(abs(balance))}"
        position = "You are in CREDIT (positive position)"
    elif balance < 0:
        interpretation = f"You owe {name} {format_amount(abs(balance))}"
        position = "You are in DEBIT (negative position)"
    else:
        interpretation = "Account is settled (zero balance)"
        position = "No outstanding balance"

    return (
        f"💰 Balance with {name}\n\n"
        f"Current Balance: {format_amount(balance)}\n"
        f"{interpretation}\n"
        f"{position}\n\n"
        "Transaction Summary:\n"
        f"Total: {format_amount(totals.get('total', 0))}\n"
        f"Paid: {format_amount(totals.get('paid', 0))}\n"
        f"Pending: {format_amount(totals.get('pending', 0))}\n"
        f"Outstanding (Owed): {format_amount(totals.get('owed', 0))}"
    )


def format_transactions_summary(rows: Any, limit: int = 5) -> str:
    if not isinstance(rows, list) or not rows:
        return "📋 No transactions recorded yet."

    money_in = sum(float(r.get("amount") or 0) for r in rows if isinstance(r, dict) and r.get("direction") == "in")
    money_out = sum(float(r.get("amount") or 0) for r in rows if isinstance(r, dict) and r.get("direction") == "out")

    lines = [
        f"📋 Transactions Summary ({len(rows)} total)",
        "",
        f"Money In: {format_amount(money_in)}",
        f"Money Out: {format_amount(money_out)}",
        f"Net: {format_amount(money_in - money_out)}",
        "",
        "Most recent:",
    ]
    for row in rows[:limit]:
        if not isinstance(row, dict):
            continue
        who = row.get("vendor_name") or row.get("counterparty") or "—"
        arrow = "⬇️" if row.get("direction") == "in" else "⬆️"
        lines.append(f"{arrow} {who}: {format_amount(float(row.get('amount') or 0))}")
    return "\n".join(lines)

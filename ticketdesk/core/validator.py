# Role: Input gatekeeper per intent. missing_fields() gives the ordered list of fields still needed for a draft
# (drives the one-question-at-a-time clarification loop); validate_for_submit() is the structural check the
# execution gate runs before confirming and again at submission.

from __future__ import annotations

from typing import List

from ticketdesk.models.drafts import CounterpartyDraft, QueryDraft, TransactionDraft
from ticketdesk.models.intent import IntentKind, MissingField, TransactionType

_OUTGOING_PAYMENTS = {TransactionType.PAYMENT_MADE, TransactionType.BANK_CHARGE}

# Placeholder counterparty for platform fees (bot, API, subscription); never looked up in the directory.
SYSTEM_COUNTERPARTY = "System"


def uses_bank_mode(draft: TransactionDraft) -> bool:
    # Key line: a named bank or an outgoing payment means a standard entry; everything else is a journal voucher.
    return bool(draft.bank_name or draft.bank_id) or draft.transaction_type in _OUTGOING_PAYMENTS


def is_system_fee(draft: TransactionDraft) -> bool:
    return draft.transaction_type == TransactionType.FEE and draft.counterparty_name in (None, SYSTEM_COUNTERPARTY)


def missing_fields(kind: IntentKind, draft) -> List[MissingField]:
    # 1) Inventory drafts: counterparty, event, quantity, area, amount (in that order)
    # 2) Manual drafts: shape depends on transaction type
    # 3) Counterparty creation: name, phone
    # 4) Queries: the one reference they need
    missing: List[MissingField] = []

    if isinstance(draft, TransactionDraft):
        has_counterparty = bool(draft.counterparty_name or draft.counterparty_id)
        has_bank = bool(draft.bank_name or draft.bank_id)
        has_amount = draft.amount is not None and draft.amount > 0

        if kind in {IntentKind.PURCHASE, IntentKind.ORDER}:
            if not has_counterparty:
                missing.append(MissingField.COUNTERPARTY)
            if not (draft.event_query or draft.event_id):
                missing.append(MissingField.EVENT)
            if not draft.quantity or draft.quantity < 1:
                missing.append(MissingField.QUANTITY)
            if not draft.area:
                missing.append(MissingField.AREA)
            if not has_amount:
                missing.append(MissingField.AMOUNT)
            return missing

        if draft.transaction_type == TransactionType.BANK_CHARGE:
            if not has_bank:
                missing.append(MissingField.BANK)
            if not has_amount:
                missing.append(MissingField.AMOUNT)
            return missing

        if not has_counterparty and draft.transaction_type != TransactionType.FEE:
            missing.append(MissingField.COUNTERPARTY)
        if not has_amount:
            missing.append(MissingField.AMOUNT)
        if draft.direction is None:
            missing.append(MissingField.DIRECTION)
        if draft.mode == "standard" and not has_bank:
            missing.append(MissingField.BANK)
        return missing

    if isinstance(draft, CounterpartyDraft):
        if not draft.name:
            missing.append(MissingField.NAME)
        if not draft.phone:
            missing.append(MissingField.PHONE)
        return missing

    if isinstance(draft, QueryDraft):
        if draft.query_type == "profit" and not (draft.event_query or draft.event_id or draft.event_name):
            missing.append(MissingField.EVENT)
        if draft.query_type == "balance" and not (draft.counterparty_name or draft.counterparty_id):
            missing.append(MissingField.COUNTERPARTY)
    return missing


def unresolved_references(kind: IntentKind, draft) -> List[MissingField]:
    # Fields that are filled in as text but still lack a resolved id.
    refs: List[MissingField] = []
    if isinstance(draft, TransactionDraft):
        if draft.transaction_type == TransactionType.BANK_CHARGE:
            if draft.bank_name and not draft.bank_id:
                refs.append(MissingField.BANK)
            return refs
        if draft.counterparty_name and not draft.counterparty_id and not is_system_fee(draft):
            refs.append(MissingField.COUNTERPARTY)
        if kind in {IntentKind.PURCHASE, IntentKind.ORDER} and draft.event_query and not draft.event_id:
            refs.append(MissingField.EVENT)
        if kind == IntentKind.MANUAL_TRANSACTION and draft.mode == "standard" and draft.bank_name and not draft.bank_id:
            refs.append(MissingField.BANK)
    elif isinstance(draft, QueryDraft):
        if draft.query_type == "balance" and draft.counterparty_name and not draft.counterparty_id:
            refs.append(MissingField.COUNTERPARTY)
        if draft.query_type == "profit" and draft.event_query and not draft.event_id:
            refs.append(MissingField.EVENT)
    return refs


class Validator:
    def validate_for_submit(self, kind: IntentKind, draft) -> List[str]:
        """
        Structural checks on a draft that is about to be sent. Returns field-level error strings;
        an empty list means the payload can be submitted.
        """
        errors: List[str] = []

        if kind in {IntentKind.PURCHASE, IntentKind.ORDER} and isinstance(draft, TransactionDraft):
            if not draft.event_id:
                errors.append("Event/Game is required")
            if not draft.quantity or draft.quantity < 1:
                errors.append("Quantity must be at least 1")
            if not draft.area:
                errors.append("Area/Section is required")
            total = draft.total_amount()
            if kind == IntentKind.PURCHASE:
                if not draft.counterparty_id:
                    errors.append("Vendor (Bought From) is required")
                if not total or total <= 0:
                    errors.append("Total Cost must be greater than 0")
            else:
                if not draft.counterparty_id:
                    errors.append("Customer (Sold To) is required")
                if not total or total <= 0:
                    errors.append("Selling Price must be greater than 0")
            return errors

        if kind == IntentKind.MANUAL_TRANSACTION and isinstance(draft, TransactionDraft):
            if not draft.amount or draft.amount <= 0:
                errors.append("Amount must be greater than 0")
            exempt = draft.transaction_type == TransactionType.BANK_CHARGE or is_system_fee(draft)
            if not exempt and not draft.counterparty_id:
                errors.append("Vendor is required")
            if draft.mode == "standard" and not draft.bank_id:
                errors.append("Bank Account is required")
            if draft.direction not in ("in", "out"):
                errors.append("Direction is required")
            return errors

        if kind == IntentKind.CREATE_COUNTERPARTY and isinstance(draft, CounterpartyDraft):
            if not draft.name:
                errors.append("Name is required")
            if not draft.phone:
                errors.append("Phone is required")
            return errors

        return [f"Unsupported action: {kind.value}"]

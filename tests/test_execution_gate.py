from unittest.mock import MagicMock

import pytest

from ticketdesk.core.execution_gate import ExecutionGate, build_payload, friendly_error, record_id
from ticketdesk.models.drafts import CounterpartyDraft, QueryDraft, TransactionDraft
from ticketdesk.models.entities import DirectoryEntry
from ticketdesk.models.intent import IntentKind, ManualCategory, TransactionType
from ticketdesk.tools.records_client import RecordResult, RecordsClient


def _purchase(**overrides):
    values = dict(
        transaction_type=TransactionType.BUY,
        counterparty_name="Benny",
        counterparty_id="v1",
        event_id="f1",
        event_name="Arsenal vs Tottenham Hotspur",
        quantity=3,
        area="Shortside Upper",
        amount=33.333,
        per_ticket=True,
    )
    values.update(overrides)
    return TransactionDraft(**values)


@pytest.fixture
def records():
    return MagicMock(spec=RecordsClient)


class TestBuildPayload:
    def test_purchase_multiplies_per_ticket_price_and_rounds(self):
        payload = build_payload(IntentKind.PURCHASE, _purchase())
        assert payload["cost"] == 100.0
        assert payload["bought_from_vendor_id"] == "v1"
        assert payload["game_id"] == "f1"
        assert payload["quantity"] == 3

    def test_order_uses_total_as_is(self):
        draft = _purchase(transaction_type=TransactionType.SELL, amount=450.005, per_ticket=False, order_number="77")
        payload = build_payload(IntentKind.ORDER, draft)
        assert payload["selling"] == round(450.005, 2)
        assert payload["sold_to_vendor_id"] == "v1"
        assert payload["order_number"] == "77"

    def test_journal_voucher_has_no_bank_account(self):
        draft = TransactionDraft(
            transaction_type=TransactionType.PAYMENT_RECEIVED,
            counterparty_name="Benny",
            counterparty_id="v1",
            amount=500,
            direction="in",
            mode="journal_voucher",
            bank_id="b1",
        )
        payload = build_payload(IntentKind.MANUAL_TRANSACTION, draft)
        assert payload["bank_account_id"] is None
        assert payload["category"] == ManualCategory.OTHER.value
        assert payload["type"] == "manual"

    def test_bank_charge_falls_back_to_bank_as_vendor(self):
        draft = TransactionDraft(
            transaction_type=TransactionType.BANK_CHARGE,
            bank_name="HSBC",
            bank_id="b1",
            amount=25,
            direction="out",
        )
        payload = build_payload(IntentKind.MANUAL_TRANSACTION, draft)
        assert payload["vendor_name"] == "HSBC"
        assert payload["vendor_id"] == "b1"
        assert payload["bank_account_id"] == "b1"

    def test_counterparty(self):
        payload = build_payload(IntentKind.CREATE_COUNTERPARTY, CounterpartyDraft(name="Ali", phone="0770090012"))
        assert payload == {"name": "Ali", "phone": "0770090012", "role": "trader", "email": None}

    def test_unsupported_kind(self):
        with pytest.raises(ValueError, match="Unsupported action"):
            build_payload(IntentKind.QUERY, QueryDraft(query_type="generic"))


class TestFriendlyErrors:
    def test_not_found_is_per_kind(self):
        assert "vendor or event" in friendly_error(IntentKind.PURCHASE, "Vendor not found")
        assert "customer or event" in friendly_error(IntentKind.ORDER, "Game does not exist")

    def test_templates(self):
        assert "already exists" in friendly_error(IntentKind.CREATE_COUNTERPARTY, "duplicate key")
        assert "permission" in friendly_error(IntentKind.PURCHASE, "Unauthorized")
        assert "trouble connecting" in friendly_error(IntentKind.PURCHASE, "Network error: refused")

    def test_unknown_error_is_quoted(self):
        text = friendly_error(IntentKind.PURCHASE, "teapot")
        assert "Here's what I know: teapot" in text


class TestRecordId:
    def test_shapes(self):
        assert record_id({"id": 5}) == "5"
        assert record_id({"vendor": {"id": "v9"}}) == "v9"
        assert record_id({"counterparty": {"id": "c1"}}) == "c1"
        assert record_id({"ok": True}) is None
        assert record_id(None) is None


class TestExecute:
    def test_success_dispatches_once(self, records):
        records.create_purchase.return_value = RecordResult(ok=True, data={"id": "r1"})
        result = ExecutionGate(records_client=records).execute(IntentKind.PURCHASE, _purchase())

        assert result.ok
        assert result.mutated
        assert result.message == "✅ Purchase created successfully!"
        records.create_purchase.assert_called_once()
        assert records.create_purchase.call_args[0][0]["cost"] == 100.0

    def test_validation_failure_does_not_dispatch(self, records):
        result = ExecutionGate(records_client=records).execute(IntentKind.PURCHASE, _purchase(event_id=None))

        assert not result.ok
        assert result.validation_failed
        assert result.errors == ["Event/Game is required"]
        records.create_purchase.assert_not_called()

    def test_backend_failure_is_friendly_and_not_retried(self, records):
        records.create_counterparty.return_value = RecordResult(ok=False, error="Vendor already exists")
        draft = CounterpartyDraft(name="Benny", phone="07700900123")
        result = ExecutionGate(records_client=records).execute(IntentKind.CREATE_COUNTERPARTY, draft)

        assert not result.ok
        assert not result.validation_failed
        assert not result.mutated
        assert result.message.startswith("Looks like that already exists")
        records.create_counterparty.assert_called_once()


class TestRunQuery:
    def test_profit(self, records):
        records.run_profit_loss.return_value = RecordResult(ok=True, data={"eventName": "Arsenal vs Tottenham Hotspur"})
        draft = QueryDraft(query_type="profit", event_query="arsenal", event_id="f1", event_name="Arsenal vs Tottenham Hotspur")
        result = ExecutionGate(records_client=records).run_query(draft)

        assert result.ok
        records.run_profit_loss.assert_called_once_with("Arsenal vs Tottenham Hotspur", "f1")
        assert result.message.startswith("📊 Profit & Loss for Arsenal vs Tottenham Hotspur")

    def test_balance_passes_known_balance(self, records):
        records.run_vendor_balance.return_value = RecordResult(ok=True, data={"vendorName": "Benny", "balance": 250})
        draft = QueryDraft(query_type="balance", counterparty_name="Benny", counterparty_id="v1")
        vendors = [DirectoryEntry(id="v1", name="Benny", balance=250.0)]
        result = ExecutionGate(records_client=records).run_query(draft, vendors)

        records.run_vendor_balance.assert_called_once_with("Benny", "v1", known_balance=250.0)
        assert "Benny owes you" in result.message

    def test_failure(self, records):
        records.list_transactions.return_value = RecordResult(ok=False, error="connection reset")
        result = ExecutionGate(records_client=records).run_query(QueryDraft(query_type="generic"))

        assert not result.ok
        assert "trouble connecting" in result.message

import pytest

from ticketdesk.models.drafts import CounterpartyDraft, QueryDraft, TransactionDraft
from ticketdesk.models.intent import IntentKind, ManualCategory, MissingField, TransactionType
from ticketdesk.nlu.intent_classifier import IntentClassifier


@pytest.fixture
def classifier():
    return IntentClassifier()


class TestInventoryRequests:
    """Purchases and sales: counterparty, quantity, area, price and the event phrase from one message."""

    def test_purchase_with_every_field(self, classifier):
        result = classifier.classify("Bought from Benny 2 tickets Arsenal Spurs Short Upper 100 ea")

        assert result.kind == IntentKind.PURCHASE
        assert result.transaction_type == TransactionType.BUY
        draft = result.payload
        assert isinstance(draft, TransactionDraft)
        assert draft.counterparty_name == "Benny"
        assert draft.quantity == 2
        assert draft.area == "Shortside Upper"
        assert draft.amount == 100
        assert draft.per_ticket is True
        assert draft.total_amount() == 200
        assert draft.event_query == "Arsenal Tottenham"
        assert result.missing_fields == []

    def test_word_order_does_not_matter(self, classifier):
        draft = classifier.classify("Bought 2 Arsenal Spurs tickets from Benny at 100 each").payload

        assert draft.counterparty_name == "Benny"
        assert draft.quantity == 2
        assert draft.amount == 100
        assert draft.per_ticket is True
        assert draft.event_query == "Arsenal Tottenham"

    def test_case_does_not_change_the_result(self, classifier):
        upper = classifier.classify("BOUGHT FROM BENNY 100 GBP")
        lower = classifier.classify("bought from benny 100 gbp")

        assert upper.kind == lower.kind == IntentKind.PURCHASE
        assert upper.payload.amount == lower.payload.amount == 100
        assert upper.payload.per_ticket is False
        assert upper.payload.counterparty_name.lower() == lower.payload.counterparty_name.lower() == "benny"
        assert upper.missing_fields == [MissingField.EVENT, MissingField.QUANTITY, MissingField.AREA]

    def test_sale(self, classifier):
        result = classifier.classify("Sold 4 tickets to John Smith for Chelsea vs Leeds at £150 each")

        assert result.kind == IntentKind.ORDER
        draft = result.payload
        assert draft.counterparty_name == "John Smith"
        assert draft.quantity == 4
        assert draft.amount == 150
        assert draft.per_ticket is True
        assert draft.event_query == "Chelsea vs Leeds"
        assert draft.direction == "in"
        assert draft.category == ManualCategory.TICKET_SALE
        assert result.missing_fields == [MissingField.AREA]

    def test_missing_fields_come_in_order(self, classifier):
        result = classifier.classify("bought some tickets")
        assert result.kind == IntentKind.PURCHASE
        assert result.missing_fields == [
            MissingField.COUNTERPARTY,
            MissingField.EVENT,
            MissingField.QUANTITY,
            MissingField.AREA,
            MissingField.AMOUNT,
        ]


class TestPayments:
    def test_payment_made_needs_a_bank(self, classifier):
        result = classifier.classify("PAID BENNY 3250")

        assert result.kind == IntentKind.MANUAL_TRANSACTION
        assert result.transaction_type == TransactionType.PAYMENT_MADE
        draft = result.payload
        assert draft.counterparty_name == "BENNY"
        assert draft.amount == 3250
        assert draft.direction == "out"
        assert draft.mode == "standard"
        assert result.missing_fields == [MissingField.BANK]
        assert MissingField.BANK.value == "payment method/bank"

    def test_payment_received_into_bank(self, classifier):
        result = classifier.classify("Received 500 from Benny into HSBC")

        assert result.transaction_type == TransactionType.PAYMENT_RECEIVED
        draft = result.payload
        assert draft.counterparty_name == "Benny"
        assert draft.bank_name == "HSBC"
        assert draft.direction == "in"
        assert draft.mode == "standard"
        assert result.missing_fields == []

    def test_paid_me_without_bank_is_journal_voucher(self, classifier):
        result = classifier.classify("Benny paid me 500")

        draft = result.payload
        assert result.transaction_type == TransactionType.PAYMENT_RECEIVED
        assert draft.counterparty_name == "Benny"
        assert draft.amount == 500
        assert draft.mode == "journal_voucher"
        assert result.missing_fields == []

    def test_bank_charge_uses_bank_as_counterparty(self, classifier):
        result = classifier.classify("Bank charges of 25 from HSBC")

        assert result.transaction_type == TransactionType.BANK_CHARGE
        draft = result.payload
        assert draft.bank_name == "HSBC"
        assert draft.counterparty_name == "HSBC"
        assert draft.amount == 25
        assert draft.notes == "Bank charges"
        assert result.missing_fields == []

    def test_salary_takes_priority_over_plain_payment(self, classifier):
        result = classifier.classify("Paid salary 1200 to Omar from Barclays")

        assert result.transaction_type == TransactionType.SALARY
        draft = result.payload
        assert draft.counterparty_name == "Omar"
        assert draft.bank_name == "Barclays"
        assert draft.category == ManualCategory.SALARY
        assert draft.amount == 1200

    def test_fee_is_booked_against_system(self, classifier):
        result = classifier.classify("AI bot fee 30")

        assert result.transaction_type == TransactionType.FEE
        draft = result.payload
        assert draft.category == ManualCategory.AI_BOT
        assert draft.notes == "AI Bot Fee"
        assert draft.mode == "journal_voucher"
        assert draft.counterparty_name == "System"
        assert result.missing_fields == []

    def test_fee_keeps_a_named_counterparty(self, classifier):
        result = classifier.classify("Paid API fee 40 to Benny")

        assert result.transaction_type == TransactionType.FEE
        assert result.payload.counterparty_name == "Benny"
        assert result.payload.notes == "API Usage Fee"


class TestCounterpartyCreation:
    def test_name_role_and_phone(self, classifier):
        result = classifier.classify("Create new counterparty Ali Saad trader +96176389293")

        assert result.kind == IntentKind.CREATE_COUNTERPARTY
        draft = result.payload
        assert isinstance(draft, CounterpartyDraft)
        assert draft.name == "Ali Saad"
        assert draft.role == "trader"
        assert draft.phone == "+96176389293"
        assert result.missing_fields == []

    def test_called_name(self, classifier):
        draft = classifier.classify("new trader called Sam 07700900123").payload
        assert draft.name == "Sam"
        assert draft.phone == "07700900123"

    def test_missing_phone(self, classifier):
        result = classifier.classify("Add contact Ali Saad")
        assert result.payload.name == "Ali Saad"
        assert result.missing_fields == [MissingField.PHONE]


class TestQueries:
    def test_profit_with_event(self, classifier):
        result = classifier.classify("What's the profit on Arsenal vs Spurs?")

        assert result.kind == IntentKind.QUERY_PROFIT_LOSS
        assert isinstance(result.payload, QueryDraft)
        assert result.payload.event_query == "Arsenal vs Tottenham"

    def test_profit_takes_event_from_earlier_in_the_tile(self, classifier):
        result = classifier.classify(
            "profit on that?",
            ["Bought 2 tickets from Benny for Chelsea vs Leeds at 150 each"],
        )

        assert result.kind == IntentKind.QUERY_PROFIT_LOSS
        assert result.payload.event_query == "Chelsea vs Leeds"
        assert "earlier" in result.explanation

    def test_balance_owe(self, classifier):
        result = classifier.classify("How much does Benny owe?")
        assert result.kind == IntentKind.QUERY_VENDOR_BALANCE
        assert result.payload.counterparty_name == "Benny"

    def test_balance_with(self, classifier):
        result = classifier.classify("What's my balance with John Smith")
        assert result.payload.counterparty_name == "John Smith"

    def test_balance_between_me_and_someone(self, classifier):
        result = classifier.classify("Who owes who between me and Benny")

        assert result.kind == IntentKind.QUERY_VENDOR_BALANCE
        assert result.payload.counterparty_name == "Benny"
        assert result.missing_fields == []

    def test_generic_summary(self, classifier):
        result = classifier.classify("show me recent transactions")
        assert result.kind == IntentKind.QUERY
        assert result.payload.query_type == "generic"


class TestEdgeCases:
    @pytest.mark.parametrize("text", ["hi", "Hello!", "good morning"])
    def test_greeting(self, classifier, text):
        assert classifier.classify(text).kind == IntentKind.GREETING

    def test_greeting_followed_by_request_is_a_request(self, classifier):
        assert classifier.classify("hey, bought 2 tickets from Benny").kind == IntentKind.PURCHASE

    @pytest.mark.parametrize("text", ["", "   ", "what's the weather like"])
    def test_unknown(self, classifier, text):
        result = classifier.classify(text)
        assert result.kind == IntentKind.UNKNOWN
        assert result.confidence == 0.0
        assert result.payload is None

    def test_only_first_confident_matcher_is_used(self):
        calls = []

        def first(utt, ctx):
            calls.append("first")
            return None

        def second(utt, ctx):
            calls.append("second")
            return IntentClassifier().classify("hi")

        def third(utt, ctx):
            calls.append("third")
            return None

        classifier = IntentClassifier(matchers=[("a", first), ("b", second), ("c", third)])
        assert classifier.classify("anything").kind == IntentKind.GREETING
        assert calls == ["first", "second"]

from ticketdesk.models.drafts import CounterpartyDraft, TransactionDraft
from ticketdesk.models.intent import IntentKind, ManualCategory, TransactionType
from ticketdesk.utils.summaries import (
    build_confirmation_summary,
    format_amount,
    format_profit_loss,
    format_transactions_summary,
    format_validation_errors,
    format_vendor_balance,
)


class TestFormatAmount:
    def test_symbol_and_thousands(self):
        assert format_amount(3250) == "£3,250.00"
        assert format_amount(0.5) == "£0.50"

    def test_negative(self):
        assert format_amount(-120) == "-£120.00"

    def test_unset(self):
        assert format_amount(None) == "(not set)"


class TestConfirmationSummary:
    def test_purchase_shows_per_ticket_breakdown(self):
        draft = TransactionDraft(
            transaction_type=TransactionType.BUY,
            counterparty_name="Benny",
            quantity=2,
            area="Shortside Upper",
            event_name="Arsenal vs Tottenham Hotspur",
            event_date="2026-04-12T15:00:00Z",
            amount=100,
            per_ticket=True,
            block="112",
        )
        summary = build_confirmation_summary(IntentKind.PURCHASE, draft)

        assert summary.startswith("📦 Purchase Details:")
        assert "Event: Arsenal vs Tottenham Hotspur (2026-04-12)" in summary
        assert "Quantity: 2 tickets" in summary
        assert "Bought From: Benny" in summary
        assert "Total Cost: £200.00 (2 × £100.00)" in summary
        assert "Block: 112" in summary
        assert summary.endswith("Shall I save this? (yes / no)")

    def test_order_with_unset_fields(self):
        draft = TransactionDraft(transaction_type=TransactionType.SELL, amount=300)
        summary = build_confirmation_summary(IntentKind.ORDER, draft)

        assert "🎫 Sale Details:" in summary
        assert "Sold To: (not set)" in summary
        assert "Area: (not set)" in summary
        assert "Selling Price: £300.00" in summary

    def test_standard_payment_shows_bank_balance(self):
        draft = TransactionDraft(
            transaction_type=TransactionType.PAYMENT_MADE,
            counterparty_name="Benny",
            amount=3250,
            direction="out",
            category=ManualCategory.OTHER,
            bank_name="HSBC",
            bank_id="b1",
        )
        summary = build_confirmation_summary(IntentKind.MANUAL_TRANSACTION, draft, bank_balance=10000)

        assert "💰 Payment Details:" in summary
        assert "Direction: Money Out (Payment)" in summary
        assert "Bank: HSBC (£10,000.00)" in summary

    def test_journal_voucher(self):
        draft = TransactionDraft(
            transaction_type=TransactionType.PAYMENT_RECEIVED,
            counterparty_name="Benny",
            amount=500,
            direction="in",
            mode="journal_voucher",
        )
        summary = build_confirmation_summary(IntentKind.MANUAL_TRANSACTION, draft)

        assert "Direction: Money In (Receipt)" in summary
        assert "Mode: Journal voucher (no bank movement)" in summary
        assert "Bank:" not in summary

    def test_counterparty(self):
        draft = CounterpartyDraft(name="Ali Saad", phone="+96176389293", role="trader")
        summary = build_confirmation_summary(IntentKind.CREATE_COUNTERPARTY, draft)

        assert "👤 Counterparty Details:" in summary
        assert "Name: Ali Saad" in summary
        assert "Phone: +96176389293" in summary
        assert "Role: trader" in summary


class TestResultText:
    def test_validation_errors(self):
        text = format_validation_errors(["Event/Game is required", "Quantity must be at least 1"])
        assert text == (
            "I can't save this yet:\n• Event/Game is required\n• Quantity must be at least 1\n\n"
            "Edit the details and confirm again."
        )

    def test_profit_loss(self):
        text = format_profit_loss(
            {
                "eventName": "Arsenal vs Tottenham Hotspur",
                "recordCount": 3,
                "totalQuantity": 7,
                "totalCost": 690,
                "targetSelling": 450,
                "projectedProfit": 160,
            }
        )
        assert text.startswith("📊 Profit & Loss for Arsenal vs Tottenham Hotspur")
        assert "Total Quantity: 7 tickets" in text
        assert "Projected Profit: £160.00 (Based on target sell)" in text

    def test_vendor_balance_positions(self):
        assert "Benny owes you £250.00" in format_vendor_balance({"vendorName": "Benny", "balance": 250})
        assert "You owe John Smith £120.00" in format_vendor_balance({"vendorName": "John Smith", "balance": -120})
        assert "Account is settled (zero balance)" in format_vendor_balance({"vendorName": "Ali", "balance": 0})

    def test_transactions_summary(self):
        rows = [
            {"vendor_name": "Benny", "amount": 500, "direction": "in"},
            {"vendor_name": "HSBC", "amount": 25, "direction": "out"},
        ]
        text = format_transactions_summary(rows)
        assert "📋 Transactions Summary (2 total)" in text
        assert "Money In: £500.00" in text
        assert "Money Out: £25.00" in text
        assert "Net: £475.00" in text
        assert "⬇️ Benny: £500.00" in text

    def test_no_transactions(self):
        assert format_transactions_summary([]) == "📋 No transactions recorded yet."

# Role: Central enums for the intent pipeline. Keeps classifier output, validation rules,
# decision routing, and the execution gate speaking the same vocabulary.

from enum import Enum


class IntentKind(str, Enum):
    PURCHASE = "purchase"
    ORDER = "order"
    MANUAL_TRANSACTION = "manual_transaction"
    CREATE_COUNTERPARTY = "create_counterparty"
    QUERY = "query"
    QUERY_PROFIT_LOSS = "query_profit_loss"
    QUERY_VENDOR_BALANCE = "query_vendor_balance"
    UNKNOWN = "unknown"
    # Internal: answered with a canned reply, never drafted.
    GREETING = "greeting"


class TransactionType(str, Enum):
    BUY = "buy"
    SELL = "sell"
    PAYMENT_MADE = "payment_made"
    PAYMENT_RECEIVED = "payment_received"
    BANK_CHARGE = "bank_charge"
    SALARY = "salary"
    FEE = "fee"


class ManualCategory(str, Enum):
    TICKET_PURCHASE = "ticket_purchase"
    TICKET_SALE = "ticket_sale"
    TICKET_ORDER = "ticket_order"
    MEMBERSHIP = "membership"
    SHIPPING = "shipping"
    AI_BOT = "ai_bot"
    SALARY = "salary"
    INTERNAL = "internal"
    JOURNAL_VOUCHER = "journal_voucher"
    OTHER = "other"


class MissingField(str, Enum):
    COUNTERPARTY = "counterparty"
    EVENT = "event"
    QUANTITY = "quantity"
    AREA = "area"
    AMOUNT = "amount"
    # Key line: the bank slot is labelled the way operators read it.
    BANK = "payment method/bank"
    DIRECTION = "direction"
    NAME = "name"
    PHONE = "phone"


QUERY_KINDS = {IntentKind.QUERY, IntentKind.QUERY_PROFIT_LOSS, IntentKind.QUERY_VENDOR_BALANCE}
DRAFT_KINDS = {
    IntentKind.PURCHASE,
    IntentKind.ORDER,
    IntentKind.MANUAL_TRANSACTION,
    IntentKind.CREATE_COUNTERPARTY,
}

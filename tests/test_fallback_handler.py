from ticketdesk.core.fallback_handler import GENERIC_ERROR, FallbackHandler
from ticketdesk.models.drafts import CounterpartyDraft, TransactionDraft
from ticketdesk.models.entities import EntityCandidate
from ticketdesk.models.intent import IntentKind, MissingField, TransactionType
from ticketdesk.models.state import ClarificationState, ConversationState, Phase


def _state(clarification=None):
    return ConversationState(session_id="s1", clarification=clarification)


class TestRecover:
    def test_idle_gets_generic_message(self):
        result = FallbackHandler().recover(state=_state(), user_message="x", error="boom")
        assert result.message == GENERIC_ERROR
        assert not result.kept_state

    def test_open_question_is_asked_again(self):
        clar = ClarificationState(
            phase=Phase.AWAITING_FIELD,
            intent_kind=IntentKind.CREATE_COUNTERPARTY,
            partial_payload=CounterpartyDraft(name="Sam"),
            awaiting_field=MissingField.PHONE,
        )
        state = _state(clar)
        result = FallbackHandler().recover(state=state, user_message="x")

        assert result.kept_state
        assert result.pending_field == "phone"
        assert result.message.startswith("What's their phone number?")
        assert state.clarification is not None

    def test_choices_are_listed_again(self):
        clar = ClarificationState(
            phase=Phase.AWAITING_DISAMBIGUATION,
            intent_kind=IntentKind.PURCHASE,
            partial_payload=TransactionDraft(transaction_type=TransactionType.BUY, counterparty_name="John"),
            disambiguation_field=MissingField.COUNTERPARTY,
            candidates=[
                EntityCandidate(id="v2", display_name="John Smith"),
                EntityCandidate(id="v3", display_name="John Doe"),
            ],
            unresolved_name="John",
        )
        result = FallbackHandler().recover(state=_state(clar), user_message="x")

        assert "1. John Smith" in result.message
        assert result.pending_field == "counterparty"

    def test_summary_is_shown_again(self):
        clar = ClarificationState(
            phase=Phase.READY_TO_CONFIRM,
            intent_kind=IntentKind.CREATE_COUNTERPARTY,
            partial_payload=CounterpartyDraft(name="Sam", phone="07700900123"),
        )
        result = FallbackHandler().recover(state=_state(clar), user_message="x")
        assert result.message.startswith("👤 Counterparty Details:")

    def test_create_offer_is_shown_again(self):
        clar = ClarificationState(
            phase=Phase.AWAITING_DISAMBIGUATION,
            intent_kind=IntentKind.PURCHASE,
            partial_payload=TransactionDraft(transaction_type=TransactionType.BUY, counterparty_name="Zed"),
            disambiguation_field=MissingField.COUNTERPARTY,
            unresolved_name="Zed",
        )
        state = _state(clar)
        result = FallbackHandler().recover(state=state, user_message="x")

        assert result.message.startswith('I couldn\'t find a counterparty called "Zed".')
        assert result.kept_state
        assert state.clarification is not None

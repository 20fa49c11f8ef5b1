import pytest
from pydantic import ValidationError

from ticketdesk.core.decision_logic import DecisionLogic
from ticketdesk.models.decision import Action, Decision
from ticketdesk.models.drafts import QueryDraft, TransactionDraft
from ticketdesk.models.entities import EntityCandidate, Resolution
from ticketdesk.models.intent import IntentKind, MissingField, TransactionType


def _purchase(**overrides):
    values = dict(
        transaction_type=TransactionType.BUY,
        counterparty_name="Benny",
        event_query="Arsenal Tottenham",
        quantity=2,
        area="Shortside Upper",
        amount=100,
    )
    values.update(overrides)
    return TransactionDraft(**values)


CANDIDATES = [EntityCandidate(id="v2", display_name="John Smith"), EntityCandidate(id="v3", display_name="John Doe")]


class TestDecide:
    def test_complete_draft_confirms(self):
        assert DecisionLogic().decide(IntentKind.PURCHASE, _purchase()).action == Action.CONFIRM

    def test_complete_query_runs(self):
        draft = QueryDraft(query_type="generic")
        assert DecisionLogic().decide(IntentKind.QUERY, draft).action == Action.RUN_QUERY

    def test_first_missing_field_is_asked(self):
        decision = DecisionLogic().decide(IntentKind.PURCHASE, _purchase(quantity=None, area=None))
        assert decision.action == Action.ASK_FIELD
        assert decision.field == MissingField.QUANTITY
        assert decision.missing_fields == [MissingField.QUANTITY, MissingField.AREA]

    def test_reference_problems_come_before_missing_fields(self):
        resolutions = {MissingField.COUNTERPARTY: Resolution(status="ambiguous", query="John", candidates=CANDIDATES)}
        decision = DecisionLogic().decide(IntentKind.PURCHASE, _purchase(amount=None), resolutions)

        assert decision.action == Action.DISAMBIGUATE
        assert decision.unresolved_name == "John"
        assert [c.id for c in decision.candidates] == ["v2", "v3"]

    def test_counterparty_before_event(self):
        resolutions = {
            MissingField.EVENT: Resolution(status="not_found", query="Barcelona"),
            MissingField.COUNTERPARTY: Resolution(status="not_found", query="Zed"),
        }
        decision = DecisionLogic().decide(IntentKind.PURCHASE, _purchase(), resolutions)
        assert decision.action == Action.OFFER_CREATE
        assert decision.field == MissingField.COUNTERPARTY

    def test_missing_event_reasks_with_warning(self):
        resolutions = {MissingField.EVENT: Resolution(status="not_found", query="Barcelona")}
        decision = DecisionLogic().decide(IntentKind.PURCHASE, _purchase(), resolutions)

        assert decision.action == Action.ASK_FIELD
        assert decision.field == MissingField.EVENT
        assert decision.warning == 'No event found for "Barcelona".'

    def test_query_never_offers_creation(self):
        resolutions = {MissingField.COUNTERPARTY: Resolution(status="not_found", query="Zed")}
        draft = QueryDraft(query_type="balance", counterparty_name="Zed")
        decision = DecisionLogic().decide(IntentKind.QUERY_VENDOR_BALANCE, draft, resolutions)

        assert decision.action == Action.ASK_FIELD
        assert decision.warning == 'I couldn\'t find a counterparty called "Zed".'

    def test_stale_lookup_reasks(self):
        resolutions = {MissingField.EVENT: Resolution(status="stale", query="Arsenal")}
        decision = DecisionLogic().decide(IntentKind.PURCHASE, _purchase(), resolutions)
        assert decision.action == Action.ASK_FIELD
        assert decision.warning is None

    def test_resolved_references_are_skipped(self):
        resolutions = {MissingField.COUNTERPARTY: Resolution(status="resolved", query="Benny", candidates=CANDIDATES[:1])}
        assert DecisionLogic().decide(IntentKind.PURCHASE, _purchase(), resolutions).action == Action.CONFIRM


class TestDecisionContract:
    def test_question_needs_a_field(self):
        with pytest.raises(ValidationError, match="field is required"):
            Decision(action=Action.ASK_FIELD)

    def test_disambiguation_needs_two_candidates(self):
        with pytest.raises(ValidationError, match="at least two candidates"):
            Decision(action=Action.DISAMBIGUATE, field=MissingField.COUNTERPARTY, candidates=CANDIDATES[:1])

    def test_confirm_carries_no_question(self):
        with pytest.raises(ValidationError):
            Decision(action=Action.CONFIRM, field=MissingField.AREA)

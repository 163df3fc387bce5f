"""
Unit tests for retrieval scoring, merging and escalation rules.
"""
import pytest

from supportdesk.config import TicketPriority
from supportdesk.retrieval.domain import (
    NO_CONTEXT_ANSWER,
    AnswerPromptBuilder,
    ConfidenceScorer,
    EscalationPolicy,
    RAGResponse,
    ResponseStatus,
    SourceReference,
    calculate_answer_quality,
    merge_results,
    split_limit,
)
from tests.fakes import hit


class TestConfidenceScorer:
    """Tests for the answer confidence heuristic."""

    def test_refusal_scores_low_regardless_of_context(self):
        answer = "I don't have enough information to answer this question"
        assert ConfidenceScorer.score(answer, ["x" * 20000]) == 0.3

    def test_cannot_answer_is_a_refusal(self):
        assert ConfidenceScorer.score("I cannot answer this question.", ["x" * 500]) == 0.3

    def test_thin_context(self):
        """Context under 100 characters caps confidence at 0.4."""
        assert ConfidenceScorer.score("A" * 200, ["x" * 99]) == 0.4

    def test_short_answer(self):
        assert ConfidenceScorer.score("Yes, within 30 days.", ["x" * 500]) == 0.5

    def test_context_length_boost(self):
        """4000 characters of context add 0.12 over the 0.6 base."""
        assert ConfidenceScorer.score("A" * 60, ["x" * 4000]) == pytest.approx(0.72)

    def test_boost_is_capped(self):
        assert ConfidenceScorer.score("A" * 60, ["x" * 50000]) == pytest.approx(0.9)

    def test_context_length_is_summed_across_passages(self):
        assert ConfidenceScorer.score("A" * 60, ["x" * 2000, "y" * 2000]) == pytest.approx(0.72)

    @pytest.mark.parametrize("answer,context", [
        ("", []),
        ("A" * 60, []),
        ("A" * 10, ["x" * 150]),
        ("A" * 500, ["x" * 1000000]),
    ])
    def test_score_stays_in_range(self, answer, context):
        assert 0.0 <= ConfidenceScorer.score(answer, context) <= 0.9

    def test_monotonic_in_context_length(self):
        answer = "A" * 80
        scores = [ConfidenceScorer.score(answer, ["x" * n]) for n in range(100, 20001, 500)]

        assert scores == sorted(scores)
        assert scores[0] >= 0.6
        assert scores[-1] == pytest.approx(0.9)

    def test_positional_sources(self):
        assert ConfidenceScorer.positional_sources(["a", "b", "c"]) == [
            "Source 1", "Source 2", "Source 3"
        ]


class TestHybridMerge:
    """Tests for candidate split and merge of vector and keyword hits."""

    def test_split_limit_rounds_both_shares_up(self):
        assert split_limit(10) == (7, 3)
        assert split_limit(8) == (6, 3)
        assert split_limit(1) == (1, 1)

    def test_duplicate_text_keeps_first_occurrence(self):
        vector = [hit("refunds", 0.9, "v"), hit("shipping", 0.4)]
        keyword = [hit("refunds", 0.5, "k"), hit("returns", 0.5)]

        merged = merge_results(vector, keyword, limit=10)

        assert [r.text for r in merged] == ["refunds", "returns", "shipping"]
        assert merged[0].source_url == "v"

    def test_merge_truncates_to_limit(self):
        vector = [hit(f"v{i}", 0.9 - i * 0.1) for i in range(5)]
        keyword = [hit(f"k{i}", 0.5) for i in range(5)]

        assert len(merge_results(vector, keyword, limit=4)) == 4

    def test_equal_scores_keep_vector_first(self):
        merged = merge_results([hit("v", 0.5)], [hit("k", 0.5)], limit=2)
        assert [r.text for r in merged] == ["v", "k"]


class TestAnswerQuality:
    """Tests for retrieval quality scoring."""

    def test_no_sources_no_context(self):
        quality = calculate_answer_quality([], [])

        assert quality.relevance == 0.3
        assert quality.completeness == 0.2
        assert quality.confidence == pytest.approx(0.26)

    def test_relevance_and_completeness(self):
        sources = [
            SourceReference(text="Source 1", url=None, similarity=0.8),
            SourceReference(text="Source 2", url=None, similarity=1.0),
        ]
        quality = calculate_answer_quality(sources, ["x" * 2500])

        assert quality.relevance == pytest.approx(0.9)
        assert quality.completeness == pytest.approx(0.5)
        assert quality.confidence == pytest.approx(0.74)


class TestEscalationPolicy:
    """Tests for low-confidence escalation rules."""

    @pytest.fixture
    def policy(self):
        return EscalationPolicy(confidence_threshold=0.5, escalation_plans=["enterprise"])

    def test_low_confidence_on_eligible_plan(self, policy):
        assert policy.should_escalate(0.3, "Enterprise") is True

    def test_no_escalation_without_eligible_plan(self, policy):
        assert policy.should_escalate(0.3, "free") is False
        assert policy.should_escalate(0.3, None) is False

    def test_no_escalation_at_threshold(self, policy):
        assert policy.should_escalate(0.5, "enterprise") is False

    @pytest.mark.parametrize("confidence,priority", [
        (0.0, TicketPriority.HIGH),
        (0.29, TicketPriority.HIGH),
        (0.3, TicketPriority.MEDIUM),
        (0.49, TicketPriority.MEDIUM),
        (0.5, TicketPriority.LOW),
    ])
    def test_priority_for(self, confidence, priority):
        assert EscalationPolicy.priority_for(confidence) == priority

    def test_ticket_title_truncation(self):
        title = EscalationPolicy.ticket_title("q" * 150)
        assert len(title) == 100
        assert title.endswith("...")

    def test_short_ticket_title_is_unchanged(self):
        assert EscalationPolicy.ticket_title("Where is my order?") == "Where is my order?"


class TestRAGResponse:

    def test_no_context_response(self):
        response = RAGResponse.no_context()

        assert response.answer == NO_CONTEXT_ANSWER
        assert response.confidence == 0.0
        assert response.sources == []
        assert response.status == ResponseStatus.NO_CONTEXT
        assert response.has_context is False

    def test_prompt_embeds_context(self):
        prompt = AnswerPromptBuilder.build_system_prompt(["first passage", "second passage"])
        assert "first passage\n\nsecond passage" in prompt
        assert "Only use information from the provided context" in prompt

"""Tests for MessageClassifier — instant/simple/complex heuristics."""

from __future__ import annotations

import pytest

from chatrelay.relay.classifier import (
    INSTANT_REPLIES,
    SIMPLE_MAX_CHARS,
    Classification,
    MessageClassifier,
    Tier,
    classify,
    is_complex,
    normalize,
)


@pytest.fixture
def classifier() -> MessageClassifier:
    return MessageClassifier()


class TestNormalize:
    def test_trims_lowercases_and_collapses(self) -> None:
        assert normalize("  What's   the RATE\tfor rub  ") == "what's the rate for rub"

    def test_empty(self) -> None:
        assert normalize("   ") == ""


class TestInstantTier:
    @pytest.mark.parametrize(
        "text",
        ["hi", "Hi!", "HELLO", "thanks", "Thank you!", "bonjour", "Muraho", "привет"],
    )
    def test_canned_phrases(self, classifier: MessageClassifier, text: str) -> None:
        result = classifier.classify(text)
        assert result.tier is Tier.instant
        assert result.instant_reply

    def test_hi_gets_greeting(self, classifier: MessageClassifier) -> None:
        result = classifier.classify("hi")
        assert result == Classification(tier=Tier.instant, instant_reply=INSTANT_REPLIES["hi"])

    @pytest.mark.parametrize(
        "text",
        [
            "good morning everyone",
            "thanks a lot!",
            "hello, can you tell me what time you open",
            "bonjour, je voudrais savoir vos horaires d'ouverture ce samedi svp",
        ],
    )
    def test_prefix_followed_by_boundary(self, classifier: MessageClassifier, text: str) -> None:
        assert classifier.classify(text).tier is Tier.instant

    def test_prefix_match_uses_phrase_reply(self, classifier: MessageClassifier) -> None:
        result = classifier.classify("hi, what's the rate for rub to rwf today")
        assert result == Classification(tier=Tier.instant, instant_reply=INSTANT_REPLIES["hi"])

    def test_word_boundary_required(self, classifier: MessageClassifier) -> None:
        # "history" starts with "hi" but is not a greeting
        assert classifier.classify("history").tier is Tier.simple

    def test_deterministic(self, classifier: MessageClassifier) -> None:
        first = classifier.classify("merci")
        second = classifier.classify("merci")
        assert first == second


class TestComplexTier:
    @pytest.mark.parametrize(
        "text",
        [
            "send 100 USD to Rwanda",
            "I want to transfer money",
            "where is my money",
            "please check TX12345678",
            "how much for 10k rub",
            "is $250 enough",
            "Хочу перевести деньги",
        ],
    )
    def test_transactional(self, classifier: MessageClassifier, text: str) -> None:
        assert classifier.classify(text).tier is Tier.complex

    def test_complex_wins_over_greeting(self, classifier: MessageClassifier) -> None:
        result = classifier.classify("hi, I want to send 100 USD")
        assert result.tier is Tier.complex
        assert result.instant_reply is None

    def test_long_text_falls_back_to_complex(self, classifier: MessageClassifier) -> None:
        text = "Can you explain how your service works for people living abroad in general"
        assert len(text) >= SIMPLE_MAX_CHARS
        assert classifier.classify(text).tier is Tier.complex


class TestSimpleTier:
    def test_rate_question(self, classifier: MessageClassifier) -> None:
        assert classifier.classify("what's the rate for rub to rwf").tier is Tier.simple

    def test_short_general_question(self, classifier: MessageClassifier) -> None:
        assert classifier.classify("where are you located?").tier is Tier.simple

    def test_empty_text(self, classifier: MessageClassifier) -> None:
        assert classifier.classify("").tier is Tier.simple


class TestIsComplex:
    def test_plain_letters_are_not_an_id(self) -> None:
        assert not is_complex("mwaramutse")

    def test_amount_with_currency(self) -> None:
        assert is_complex("5,000 rwf")


def test_module_level_classify() -> None:
    assert classify("send 100 USD to Rwanda").tier is Tier.complex

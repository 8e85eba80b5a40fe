"""
Tests for the Difference Classifier.

============================================================
PURPOSE
============================================================
Covers RNG pool detection, state divergence tracking and
logic-difference fallback.

============================================================
"""

import pytest


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def classifier():
    """Fresh classifier."""
    from transcript_parity.classifier import create_difference_classifier
    return create_difference_classifier()


# ============================================================
# TEST: Pool Helpers
# ============================================================

class TestPoolHelpers:
    """Tests for random message pool helpers."""

    def test_pool_name(self):
        from transcript_parity.classifier import get_rng_pool_name

        assert get_rng_pool_name("Good day.") == "HELLOS"
        assert get_rng_pool_name("Geronimo...") == "JUMPLOSS"
        assert get_rng_pool_name("Taken.") is None

    def test_same_pool(self):
        from transcript_parity.classifier import from_same_rng_pool

        assert from_same_rng_pool("Hello.", "Goodbye.") == "HELLOS"
        assert from_same_rng_pool("Hello.", "A valiant attempt.") is None

    def test_atmospheric_difference(self):
        from transcript_parity.classifier import is_atmospheric_difference

        assert is_atmospheric_difference(
            "Forest\nYou hear in the distance the chirping of a song bird.",
            "Forest",
        )
        assert not is_atmospheric_difference("Forest", "Clearing")

    def test_darkness(self):
        from transcript_parity.classifier import is_darkness_message

        assert is_darkness_message("It is pitch black. You are likely to be eaten by a grue.")
        assert not is_darkness_message("Living Room")

    def test_detect_room(self):
        from transcript_parity.classifier import detect_room

        assert detect_room("Kitchen    Score: 10    Moves: 7\nYou are in the kitchen.") == "Kitchen"
        assert detect_room("Taken.") is None


# ============================================================
# TEST: Classification
# ============================================================

class TestClassify:
    """Tests for DifferenceClassifier.classify."""

    def test_intro_text_is_rng(self, classifier):
        result = classifier.classify(0, "", "ZORK I: The Great Underground Empire", "Welcome")

        assert result.classification.value == "rng_difference"
        assert "intro" in result.reason

    def test_intro_only_at_index_zero(self, classifier):
        result = classifier.classify(3, "look", "Release 88", "West of House")

        assert result.classification.value == "logic_difference"

    def test_atmospheric_is_rng(self, classifier):
        result = classifier.classify(
            2,
            "wait",
            "Time passes.\nYou hear in the distance the chirping of a song bird.",
            "Time passes.",
        )

        assert result.classification.value == "rng_difference"
        assert result.pool_name == "ATMOSPHERIC"

    def test_darkness_is_state_divergence(self, classifier):
        result = classifier.classify(4, "down", "It is pitch black.", "Cellar\nYou are in a dark cellar.")

        assert result.classification.value == "state_divergence"
        assert classifier.has_state_diverged

    def test_different_rooms_are_state_divergence(self, classifier):
        result = classifier.classify(
            5,
            "north",
            "Forest    Score: 0    Moves: 5\nThis is a forest.",
            "Clearing    Score: 0    Moves: 5\nYou are in a clearing.",
        )

        assert result.classification.value == "state_divergence"

    def test_after_divergence_blocked_exit(self, classifier):
        classifier.classify(4, "down", "It is pitch black.", "Cellar")
        result = classifier.classify(5, "east", "You can't go that way.", "East of Chasm")

        assert result.classification.value == "state_divergence"
        assert "Blocked exit" in result.reason

    def test_many_rng_differences_imply_divergence(self, classifier):
        for i in range(4):
            classifier.classify(i + 1, "hello", "Hello.", "Good day.")
        result = classifier.classify(9, "take lamp", "Taken.", "You already have that!")

        assert result.classification.value == "state_divergence"

    def test_mismatched_pool_usage_after_previous(self, classifier):
        classifier.classify(1, "take lamp", "Taken.", "The lamp is nailed down.")
        result = classifier.classify(2, "jump", "A valiant attempt.", "You jump on the spot.")

        assert result.classification.value == "state_divergence"
        assert result.pool_name == "YUKS"

    def test_logic_difference_fallback(self, classifier):
        result = classifier.classify(1, "take lamp", "Taken.", "The lamp is nailed down.")

        assert result.classification.value == "logic_difference"
        assert result.to_dict()["classification"] == "logic_difference"

    def test_reset_clears_history(self, classifier):
        classifier.classify(4, "down", "It is pitch black.", "Cellar")
        classifier.reset()

        assert classifier.previous_differences == []
        assert not classifier.has_state_diverged

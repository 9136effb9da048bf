"""
Tests for reply chunking.
"""

import re

from productbot.auto_reply.chunker import split_response, split_sentences


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class TestSplitResponse:
    """Tests for split_response."""

    def test_empty_input(self):
        """Test that empty input yields no chunks."""
        assert split_response("") == []
        assert split_response("   \n ") == []

    def test_short_input_is_one_trimmed_chunk(self):
        """Test that input under the limit is returned as is, trimmed."""
        assert split_response("  Hello there. How are you?  ", 100) == ["Hello there. How are you?"]

    def test_input_exactly_at_limit(self):
        """Test that input of exactly max_length is one chunk."""
        text = "a" * 50
        assert split_response(text, 50) == [text]

    def test_long_input_respects_limit(self):
        """Test that every chunk fits when all sentences fit."""
        text = " ".join(f"Sentence number {i} is here." for i in range(200))
        chunks = split_response(text, 2000)

        assert len(chunks) > 1
        assert all(len(c) <= 2000 for c in chunks)

    def test_long_input_preserves_content(self):
        """Test that concatenated chunks reproduce the input."""
        text = " ".join(f"Sentence {i} is here! Really?" for i in range(100))
        chunks = split_response(text, 300)

        assert _normalize(" ".join(chunks)) == _normalize(text)

    def test_preserves_sentence_order(self):
        """Test that chunks keep the original order."""
        text = "First one. Second one. Third one. Fourth one."
        chunks = split_response(text, 25)

        assert chunks == ["First one. Second one.", "Third one. Fourth one."]

    def test_oversized_sentence_is_its_own_chunk(self):
        """Test that a sentence longer than the limit is never cut."""
        long_sentence = "x" * 50 + "."
        text = f"Short. {long_sentence} Tail."
        chunks = split_response(text, 20)

        assert chunks == ["Short.", long_sentence, "Tail."]

    def test_trailing_fragment_is_kept(self):
        """Test that a fragment without punctuation is its own unit."""
        chunks = split_response("One sentence. A trailing fragment", 20)
        assert chunks == ["One sentence.", "A trailing fragment"]

    def test_urls_are_not_split(self):
        """Test that dots inside a URL are not sentence boundaries."""
        text = "Visit https://example.com/docs today. " + "Filler sentence here. " * 5
        chunks = split_response(text, 40)

        assert chunks[0] == "Visit https://example.com/docs today."


class TestSplitSentences:
    """Tests for sentence splitting."""

    def test_keeps_punctuation_runs(self):
        """Test that terminal punctuation stays with its sentence."""
        assert split_sentences("Wait... What?! Yes.") == ["Wait...", "What?!", "Yes."]

    def test_drops_punctuation_only_units(self):
        """Test that stray punctuation produces no units."""
        assert split_sentences("... Hi.") == ["Hi."]

    def test_splits_on_newlines_after_punctuation(self):
        """Test that paragraph breaks after a sentence are boundaries."""
        assert split_sentences("One.\n\nTwo!") == ["One.", "Two!"]

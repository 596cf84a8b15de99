from weconnect.services.analytics_service import format_reach
from weconnect.services.post_service import calculate_metadata


class TestCalculateMetadata:
    """Content statistics stored with every post."""

    def test_hashtags_and_mentions(self):
        meta = calculate_metadata("Hello #world @friend")

        assert meta["hashtags"] == ["#world"]
        assert meta["mentions"] == ["@friend"]
        assert meta["character_count"] == 20
        # hashtags are reported separately, not as words
        assert meta["word_count"] == 2

    def test_empty_content(self):
        assert calculate_metadata("") == {"character_count": 0, "word_count": 0, "hashtags": [], "mentions": []}

    def test_whitespace_runs_do_not_create_words(self):
        assert calculate_metadata("  one   two\nthree\t")["word_count"] == 3

    def test_tags_stop_at_non_ascii_word_characters(self):
        meta = calculate_metadata("Neu #café und #launch2024")
        assert meta["hashtags"] == ["#caf", "#launch2024"]


class TestFormatReach:

    def test_small_numbers_are_plain(self):
        assert format_reach(0) == "0"
        assert format_reach(1000) == "1000"

    def test_large_numbers_use_k(self):
        assert format_reach(1300) == "1.3k"
        assert format_reach(12500) == "12.5k"

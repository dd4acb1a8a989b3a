"""Tests for tag emoji matching."""
import random

import pytest

from axiss_nav.emoji_matcher import (
    CATEGORY_EMOJI_MAP, DEFAULT_TAG_EMOJI, batch_match_tag_emojis, is_valid_emoji,
    match_tag_emoji, random_tag_emoji,
)


class TestMatchTagEmoji:

    @pytest.mark.parametrize("name,expected", [
        ("前端", "🎨"),
        ("UI", "🖼️"),
        ("Python", "🐍"),
        ("数据库", "🗄️"),
    ])
    def test_exact_category(self, name, expected):
        assert match_tag_emoji(name) == expected

    def test_case_insensitive_containment(self):
        assert match_tag_emoji("python") == "🐍"

    def test_containment_beats_abbreviation(self):
        # "react" is contained (7) while "js" is only an abbreviation (5)
        assert match_tag_emoji("ReactJS") == "⚛️"

    def test_synonym(self):
        assert match_tag_emoji("frontend") == "🎨"

    def test_abbreviation(self):
        assert match_tag_emoji("sql") == "🗄️"

    def test_first_character_fallback(self):
        assert match_tag_emoji("开源") == "💻"

    def test_no_match_gives_default(self):
        assert match_tag_emoji("zzz") == DEFAULT_TAG_EMOJI

    @pytest.mark.parametrize("name", ["", "   ", None, 42])
    def test_blank_whitespace_or_non_string_gives_default(self, name):
        assert match_tag_emoji(name) == DEFAULT_TAG_EMOJI

    def test_whitespace_only_does_not_match_first_category(self):
        assert match_tag_emoji("   ") != CATEGORY_EMOJI_MAP["开发"][0]

    def test_deterministic(self):
        assert {match_tag_emoji("后端开发") for _ in range(5)} == {match_tag_emoji("后端开发")}


class TestHelpers:

    def test_batch_preserves_order(self):
        result = batch_match_tag_emojis(["前端", "zzz"])
        assert result == [
            {"name": "前端", "emoji": "🎨"},
            {"name": "zzz", "emoji": DEFAULT_TAG_EMOJI},
        ]

    def test_random_emoji_stays_in_category(self):
        rng = random.Random(7)
        for _ in range(10):
            assert random_tag_emoji("游戏", rng) in CATEGORY_EMOJI_MAP["游戏"]

    def test_random_emoji_falls_back_to_match(self):
        assert random_tag_emoji("frontend") == "🎨"
        assert random_tag_emoji("") == DEFAULT_TAG_EMOJI

    def test_is_valid_emoji(self):
        assert is_valid_emoji("🚀")
        assert is_valid_emoji("☕")
        assert not is_valid_emoji("abc")
        assert not is_valid_emoji("")
        assert not is_valid_emoji(None)

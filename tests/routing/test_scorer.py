"""
Tests for the length-ratio scorer and text normalization.
"""

import pytest

from skill_router.routing.scorer import at_word_boundary, contains_phrase, normalize, score


class TestNormalize:
    def test_lowercases_and_trims(self):
        assert normalize("  Create Requirements  ") == "create requirements"

    def test_hyphens_and_whitespace_collapse(self):
        assert normalize("spec-forge") == "spec forge"
        assert normalize("spec \t- forge") == "spec forge"

    def test_empty(self):
        assert normalize("") == ""


class TestPhraseHelpers:
    def test_contains_phrase_across_separators(self):
        assert contains_phrase("start the spec forge phase", "spec-forge")
        assert contains_phrase("start the spec-forge phase", "spec forge")

    def test_contains_empty_phrase_is_false(self):
        assert not contains_phrase("anything", "")

    def test_word_boundary(self):
        assert at_word_boundary("please review code now", "review code")
        assert not at_word_boundary("the specification", "spec")


class TestScore:
    def test_exact_input_scores_one(self):
        assert score("create requirements", "create requirements") == 1.0

    def test_substring_with_boundary(self):
        # 2/5 words + substring + boundary
        assert score("please create requirements for login", "create requirements") == pytest.approx(0.9)

    def test_prefix_bonus(self):
        # 2/5 words + substring + boundary + prefix
        assert score("create requirements for the login", "create requirements") == pytest.approx(1.0)

    def test_substring_without_boundary(self):
        # 1/3 words + substring, no boundary, no prefix
        assert score("the specification doc", "spec") == pytest.approx(1 / 3 + 0.3)

    def test_no_match_uses_word_ratio_only(self):
        assert score("one two three four", "review code") == pytest.approx(0.5)

    def test_hyphenated_trigger_matches_spaced_input(self):
        assert score("spec forge now", "spec-forge") == score("spec-forge now", "spec forge")
        assert score("spec forge now", "spec-forge") == pytest.approx(1.0)

    def test_empty_input_does_not_raise(self):
        result = score("", "create requirements")
        assert 0.0 <= result <= 1.0

    @pytest.mark.parametrize("user_input,trigger", [
        ("a", "a very long trigger phrase"),
        ("create create create", "create"),
        ("", ""),
        ("   ", "x"),
        ("spec-forge spec-forge", "spec-forge"),
    ])
    def test_score_is_bounded(self, user_input, trigger):
        assert 0.0 <= score(user_input, trigger) <= 1.0

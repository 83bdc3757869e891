"""Tests for the fixed topic master."""

from __future__ import annotations

import pytest

from skillminer.classifier import classify_batch
from skillminer.domains import MISC, TOPICS, find_by_slug, normalize, prompt_topic_list
from skillminer.pipeline.gate import is_significant

from tests.factories import FakeBackend, make_summary


class TestNormalize:
    def test_exact_match(self):
        assert normalize("Pavement Work").slug == "pavement"

    def test_surrounding_whitespace(self):
        assert normalize("  Rust Development \n").slug == "rust-dev"

    def test_substring_match(self):
        """A longer answer that contains a topic name maps onto it."""
        assert normalize("Pavement Work and related QA").slug == "pavement"

    def test_case_insensitive_substring(self):
        assert normalize("pdf handling").slug == "pdf"

    def test_keyword_match(self):
        assert normalize("asphalt compaction records").slug == "pavement"

    def test_most_keyword_hits_wins(self):
        """Two spreadsheet keyword hits beat one AI keyword hit."""
        assert normalize("excel formula in a prompt").slug == "spreadsheet"

    @pytest.mark.parametrize("raw", ["miscellaneous", "Misc", "misc", "MISCELLANEOUS"])
    def test_misc_by_name_or_slug_any_case(self, raw):
        assert normalize(raw) is MISC

    @pytest.mark.parametrize("raw,slug", [("rust-dev", "rust-dev"), ("dxf/cad", "dxf-cad"), ("TOOL DESIGN", "tool-design")])
    def test_name_or_slug_any_case(self, raw, slug):
        assert normalize(raw).slug == slug

    @pytest.mark.parametrize("raw", ["http client setup", "capital planning", "plane ticket"])
    def test_keywords_match_whole_words_only(self, raw):
        assert normalize(raw) is MISC

    def test_classified_misc_is_not_significant(self):
        backend = FakeBackend('[{"index": 0, "topic": "miscellaneous", "confidence": 0.9}]')
        [item] = classify_batch([make_summary("a")], backend)
        assert item.slug == "misc"
        assert not is_significant(item)

    @pytest.mark.parametrize("raw", ["", "   ", "something unrelated entirely"])
    def test_fallback_misc(self, raw):
        assert normalize(raw) is MISC


class TestMaster:
    def test_slugs_unique(self):
        slugs = [topic.slug for topic in TOPICS]
        assert len(slugs) == len(set(slugs))

    def test_misc_is_last_and_keywordless(self):
        assert TOPICS[-1] is MISC
        assert MISC.keywords == ()

    def test_find_by_slug(self):
        assert find_by_slug("dxf-cad").name == "DXF/CAD"
        assert find_by_slug("nope") is None

    def test_prompt_topic_list_lists_every_topic(self):
        text = prompt_topic_list()
        lines = text.splitlines()
        assert len(lines) == len(TOPICS)
        assert lines[0].startswith("- Pavement Work: pavement")
        assert lines[-1] == "- Miscellaneous: anything that fits none of the above"

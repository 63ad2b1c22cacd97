"""
Unit Tests - Analysis and Context Parsing
=========================================
Mapping model output onto API models, without calling the model.
"""

import pytest

from schemas import AnalysisResult
from services.analysis import _strip_code_fence, build_analysis_result
from services.chat import build_system_prompt
from services.context_analysis import parse_confidence, pick_relevant_sentences, split_sentences


class TestBuildAnalysisResult:

    @pytest.mark.unit
    def test_maps_camel_case_payload(self, sample_analysis_payload):
        result = build_analysis_result(sample_analysis_payload)

        assert result.summary == sample_analysis_payload["summary"]
        assert result.relevant_questions == ["When is rent due?", "Who pays for repairs?"]
        assert [item.text for item in result.action_items] == [
            "Sign the lease by Friday",
            "Pay the security deposit",
        ]
        assert all(not item.completed for item in result.action_items)
        assert [section.title for section in result.sections] == ["Rent", "Repairs"]

    @pytest.mark.unit
    def test_ids_are_unique(self, sample_analysis_payload):
        result = build_analysis_result(sample_analysis_payload)

        ids = [item.id for item in result.action_items] + [section.id for section in result.sections]
        assert len(ids) == len(set(ids))

    @pytest.mark.unit
    def test_empty_payload_gets_defaults(self):
        result = build_analysis_result({})

        assert result.summary == "No summary available"
        assert result.relevant_questions == []
        assert result.action_items == []
        assert result.sections == []
        assert "es" in result.translations

    @pytest.mark.unit
    def test_untitled_sections_and_junk_entries(self):
        result = build_analysis_result({
            "sections": [{"content": "Body"}, "not a section"],
            "actionItems": ["", "Call the landlord"],
        })

        assert len(result.sections) == 1
        assert result.sections[0].title == "Untitled Section"
        assert [item.text for item in result.action_items] == ["Call the landlord"]

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", ['```json\n{"a": 1}\n```', '```\n{"a": 1}```', '  {"a": 1} '])
    def test_code_fences_are_stripped(self, raw):
        assert _strip_code_fence(raw) == '{"a": 1}'


class TestContextHelpers:

    @pytest.mark.unit
    def test_split_sentences(self):
        assert split_sentences("One. Two! Three?") == ["One.", " Two!", " Three?"]

    @pytest.mark.unit
    def test_text_without_terminator_is_one_sentence(self):
        assert split_sentences("no punctuation here") == ["no punctuation here"]

    @pytest.mark.unit
    def test_relevant_sentences_are_long_and_early(self):
        sentences = ["Short.", "This sentence is long enough to keep."] + ["Another long enough sentence here."] * 6

        picked = pick_relevant_sentences(sentences)

        assert "Short." not in picked
        assert len(picked) == 4

    @pytest.mark.unit
    @pytest.mark.parametrize("analysis,expected", [
        ("Confidence Score: 0.85 overall", 0.85),
        ("confidence score: 0.3", 0.3),
        ("No score given", 0.5),
    ])
    def test_parse_confidence(self, analysis, expected):
        assert parse_confidence(analysis) == pytest.approx(expected)


class TestChatPrompt:

    @pytest.mark.unit
    def test_prompt_contains_summary_items_and_content(self, sample_analysis_payload):
        analysis = build_analysis_result(sample_analysis_payload)

        prompt = build_system_prompt("Full lease text", analysis)

        assert "Document Summary: A lease agreement" in prompt
        assert "- Sign the lease by Friday\n- Pay the security deposit" in prompt
        assert "Full Content: Full lease text" in prompt
        assert "only answer questions about the provided content" in prompt

    @pytest.mark.unit
    def test_prompt_with_default_analysis(self):
        prompt = build_system_prompt("Text", AnalysisResult())

        assert "Document Summary: No summary available" in prompt

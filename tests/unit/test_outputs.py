"""
Unit Tests - Speech Plans, PDF Export and Download Labels
=========================================================
"""

import re
from datetime import datetime
from types import SimpleNamespace

import pytest

from exceptions import PDFExportError, ValidationError
from services.downloads import format_size
from services.pdf_export import export_filename, generate_pdf
from services.speech import add_sentence_breaks, build_browser_speech_plan, order_voices


def _page_count(pdf: bytes) -> int:
    return len(re.findall(rb"/Type /Page[^s]", pdf))


class TestBrowserSpeechPlan:

    @pytest.mark.unit
    def test_plan_defaults(self):
        plan = build_browser_speech_plan("Hola. ¿Qué tal?", "es-ES")

        assert plan.text == "Hola.\n¿Qué tal?"
        assert plan.lang == "es-ES"
        assert plan.preferred_voices == ["Monica", "Juan", "Diego", "Jorge"]
        assert (plan.rate, plan.pitch, plan.volume) == (0.9, 1.0, 1.0)

    @pytest.mark.unit
    def test_unknown_language_has_no_preferred_voices(self):
        plan = build_browser_speech_plan("Merhaba.", "tr-TR", voice_index=2)

        assert plan.preferred_voices == []
        assert plan.voice_index == 2

    @pytest.mark.unit
    def test_blank_text_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build_browser_speech_plan("   ")
        assert exc_info.value.message == "Text is required for speech generation"

    @pytest.mark.unit
    def test_sentence_breaks(self):
        assert add_sentence_breaks("One!  Two? Three.") == "One!\nTwo?\nThree."


class TestOrderVoices:

    @pytest.mark.unit
    def test_preferred_then_non_google_then_google(self):
        voices = [
            {"name": "Google español", "lang": "es-ES"},
            {"name": "Paulina", "lang": "es-MX"},
            {"name": "Juan", "lang": "es-MX"},
            {"name": "Monica", "lang": "es-ES"},
            {"name": "Daniel", "lang": "en-GB"},
        ]

        ordered = [voice["name"] for voice in order_voices(voices, "es-ES")]

        assert ordered == ["Monica", "Juan", "Paulina", "Google español"]

    @pytest.mark.unit
    def test_no_matching_voices(self):
        assert order_voices([{"name": "Daniel", "lang": "en-GB"}], "ja") == []


class TestFormatSize:

    @pytest.mark.unit
    @pytest.mark.parametrize("size,expected", [
        (0, "0.0 B"),
        (512, "512.0 B"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (3 * 1024 ** 4, "3072.0 GB"),
    ])
    def test_labels(self, size, expected):
        assert format_size(size) == expected


class TestPdfExport:

    @pytest.fixture
    def document(self):
        return SimpleNamespace(
            id="doc-1",
            name="Lease Scan.png",
            size=2048,
            created_at=datetime(2024, 3, 1, 9, 30),
            original_text="Rent is due on the first of each month.",
            translated_text="El alquiler vence el primero de cada mes.",
        )

    @pytest.mark.unit
    @pytest.mark.parametrize("name,expected", [
        ("Lease Scan.png", "lease_scan_translation.pdf"),
        ("Translation_2024-03-01T09:30:00", "translation_2024_03_01t09_30_00_translation.pdf"),
        ("contract.v2.PDF", "contract_v2_translation.pdf"),
    ])
    def test_export_filename(self, name, expected):
        assert export_filename(name) == expected

    @pytest.mark.unit
    def test_generates_single_page_pdf(self, document):
        pdf = generate_pdf(document)

        assert pdf.startswith(b"%PDF")
        assert _page_count(pdf) == 1

    @pytest.mark.unit
    def test_long_text_overflows_onto_new_pages(self, document):
        document.original_text = "\n".join(f"Line {i} of the original document." for i in range(200))

        pdf = generate_pdf(document)

        assert _page_count(pdf) > 1

    @pytest.mark.unit
    def test_non_latin_text_without_font_is_replaced(self, document):
        document.translated_text = "家賃は毎月一日に支払う。"

        assert generate_pdf(document).startswith(b"%PDF")

    @pytest.mark.unit
    def test_failure_raises_export_error(self):
        with pytest.raises(PDFExportError) as exc_info:
            generate_pdf(SimpleNamespace(id="doc-2"))

        assert exc_info.value.message == "Failed to generate PDF"

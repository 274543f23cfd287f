"""Tests for PDF text extraction and preprocessing."""
from __future__ import annotations

import fitz
import pytest

from travel_extractor.preprocessor import Preprocessor
from travel_extractor.text_extractor import TextBlock, TextExtractor


def _pdf(lines) -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    for y, x, text in lines:
        page.insert_text((x, y), text)
    data = doc.tobytes()
    doc.close()
    return data


def test_pymupdf_extracts_spans_with_pages() -> None:
    pdf = _pdf([(72, 72, "Resort X"), (120, 72, "Aurora package"), (168, 72, "EUR 500")])

    blocks = TextExtractor().extract(pdf)

    assert sorted(b.text for b in blocks) == ["Aurora package", "EUR 500", "Resort X"]
    assert {b.page for b in blocks} == {1}


def test_extracted_lines_follow_page_order() -> None:
    pdf = _pdf([(168, 72, "airport transfer"), (72, 72, "Resort Y"), (120, 72, "room")])

    text = Preprocessor().to_text(TextExtractor().extract(pdf))

    assert text.splitlines() == ["--- page 1 ---", "Resort Y", "room", "airport transfer"]


def test_same_line_blocks_are_joined_left_to_right() -> None:
    blocks = [
        TextBlock("USD 50", (400, 120.5, 440, 130), page=1),
        TextBlock("airport transfer", (50, 120, 150, 130), page=1),
        TextBlock("room", (50, 100, 150, 110), page=1),
    ]
    groups = Preprocessor().group_blocks(blocks)
    assert [[b.text for b in g] for g in groups] == [["room"], ["airport transfer", "USD 50"]]


def test_pdfplumber_fallback_is_used(monkeypatch) -> None:
    extractor = TextExtractor()

    def _broken(_content):
        raise RuntimeError("corrupt xref")

    monkeypatch.setattr(extractor, "_extract_pymupdf", _broken)
    monkeypatch.setattr(extractor, "_extract_pdfplumber", lambda content: [TextBlock("ok", (0, 0, 1, 1))])

    assert [b.text for b in extractor.extract(b"%PDF")] == ["ok"]


def test_unreadable_pdf_raises() -> None:
    with pytest.raises(ValueError):
        TextExtractor().extract(b"not a pdf at all")


def test_text_mime_types() -> None:
    assert TextExtractor.is_text("text/plain")
    assert TextExtractor.is_text("text/csv")
    assert not TextExtractor.is_text("application/pdf")


def test_names_are_keyed_case_and_space_insensitively() -> None:
    preprocessor = Preprocessor()
    assert preprocessor.name_key("  Resort   X ") == preprocessor.name_key("resort x")
    assert preprocessor.clean_name("  Resort   X ") == "Resort X"


def test_normalize_text_keeps_lines() -> None:
    text = Preprocessor().normalize_text("  Resort X\t\tFinland \n\n\n\nrate   500  ")
    assert text == "Resort X Finland\n\nrate 500"

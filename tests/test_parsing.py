import pytest

from conftest import FakeElement
from ledgerlens import parsing
from ledgerlens.parsing import ExtractionError, extract_text


def test_extract_text_joins_elements(monkeypatch):
    elements = [FakeElement("Balance Sheet", 1), FakeElement("Total Assets 100", 2)]
    monkeypatch.setattr(parsing, "_partition", lambda pdf_bytes: elements)

    pdf = extract_text(b"%PDF-1.4")
    assert pdf.text == "Balance Sheet\n\nTotal Assets 100"
    assert pdf.page_count == 2


def test_page_count_without_metadata(monkeypatch):
    monkeypatch.setattr(parsing, "_partition", lambda pdf_bytes: ["plain element"])
    pdf = extract_text(b"%PDF-1.4")
    assert pdf.text == "plain element"
    assert pdf.page_count == 0


def test_empty_file():
    with pytest.raises(ExtractionError, match="Empty file"):
        extract_text(b"")


def test_partition_failure_is_wrapped(monkeypatch):
    def broken(pdf_bytes):
        raise RuntimeError("EOF marker not found")

    monkeypatch.setattr(parsing, "_partition", broken)
    with pytest.raises(ExtractionError, match="Failed to process PDF file") as exc_info:
        extract_text(b"%PDF-1.4 truncated")
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_elements_are_rendered_by_text_helper(monkeypatch, element_text):
    elements = [FakeElement("Total Assets 100", 1)]
    monkeypatch.setattr(parsing, "_partition", lambda pdf_bytes: elements)

    extract_text(b"%PDF-1.4")
    assert element_text == [elements]


def test_text_helper_failure_is_wrapped(monkeypatch):
    def broken(elements):
        raise TypeError("unsupported element")

    monkeypatch.setattr(parsing, "_partition", lambda pdf_bytes: [FakeElement("x")])
    monkeypatch.setattr(parsing, "_to_text", broken)
    with pytest.raises(ExtractionError, match="Failed to process PDF file"):
        extract_text(b"%PDF-1.4")

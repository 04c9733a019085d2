import io
import logging
from typing import List

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """The PDF could not be turned into usable text."""


class PdfText(BaseModel):
    text: str
    page_count: int = 0


def _partition(pdf_bytes: bytes) -> List:
    from unstructured.partition.pdf import partition_pdf

    with io.BytesIO(pdf_bytes) as pdf_stream:
        return partition_pdf(file=pdf_stream, strategy="fast")


def _to_text(elements: List) -> str:
    from unstructured.partition.common import convert_to_text

    return convert_to_text(elements)


def _page_count(elements: List) -> int:
    pages = [
        getattr(el.metadata, "page_number", None) or 0
        for el in elements
        if getattr(el, "metadata", None) is not None
    ]
    return max(pages, default=0)


def extract_text(pdf_bytes: bytes) -> PdfText:
    """Extract the plain text of a PDF. Raises ExtractionError on any failure."""
    if not pdf_bytes:
        raise ExtractionError("Empty file")

    try:
        elements = _partition(pdf_bytes)
        full_text = _to_text(elements)
    except Exception as e:
        logger.error("PDF processing error: %s", e)
        raise ExtractionError("Failed to process PDF file") from e

    return PdfText(text=full_text, page_count=_page_count(elements))

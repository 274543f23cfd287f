"""Text extraction from PDF using PyMuPDF and pdfplumber"""
import io
import logging
from typing import List, Optional, Tuple

import fitz  # PyMuPDF
import pdfplumber

logger = logging.getLogger(__name__)

TEXT_MIME_TYPES = {"text/plain", "text/markdown", "text/csv", "application/json"}


class TextBlock:
    """Represents a text span with its position on the page"""
    def __init__(self, text: str, bbox: Tuple[float, float, float, float],
                 page: int = 1, font: Optional[str] = None, size: Optional[float] = None):
        self.text = text
        self.bbox = bbox  # (x0, y0, x1, y1)
        self.page = page
        self.font = font
        self.size = size

    def __repr__(self):
        return f"TextBlock(text='{self.text[:30]}...', page={self.page}, bbox={self.bbox})"


class TextExtractor:
    """Extracts text blocks from PDF price sheets"""

    def __init__(self, use_pymupdf: bool = True):
        self.use_pymupdf = use_pymupdf  # Prefer PyMuPDF for better performance

    @staticmethod
    def is_text(mime_type: str) -> bool:
        return mime_type in TEXT_MIME_TYPES or mime_type.startswith("text/")

    def extract(self, pdf_bytes: bytes) -> List[TextBlock]:
        """
        Extract text blocks from PDF bytes

        Args:
            pdf_bytes: PDF file as bytes

        Returns:
            List of TextBlock objects in page order
        """
        if not self.use_pymupdf:
            return self._extract_pdfplumber(pdf_bytes)
        try:
            return self._extract_pymupdf(pdf_bytes)
        except Exception as e:
            logger.warning("PyMuPDF failed (%s); falling back to pdfplumber", e)
            try:
                return self._extract_pdfplumber(pdf_bytes)
            except Exception as fallback_error:
                raise ValueError(f"Failed to extract text from PDF: {e}") from fallback_error

    def _extract_pymupdf(self, pdf_bytes: bytes) -> List[TextBlock]:
        """Extract using PyMuPDF (fitz)"""
        blocks = []
        with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
            for page_num, page in enumerate(doc, start=1):
                text_dict = page.get_text("dict")

                for block in text_dict["blocks"]:
                    if "lines" not in block:  # Image block
                        continue
                    for line in block["lines"]:
                        for span in line["spans"]:
                            text = span["text"].strip()
                            if text:
                                blocks.append(TextBlock(
                                    text=text,
                                    bbox=tuple(span["bbox"]),
                                    page=page_num,
                                    font=span.get("font"),
                                    size=span.get("size"),
                                ))
        return blocks

    def _extract_pdfplumber(self, pdf_bytes: bytes) -> List[TextBlock]:
        """Extract using pdfplumber (fallback)"""
        blocks = []

        with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
            for page_num, page in enumerate(pdf.pages, start=1):
                for word in page.extract_words():
                    text = word.get("text", "").strip()
                    if text:
                        bbox = (
                            word.get("x0", 0),
                            word.get("top", 0),
                            word.get("x1", 0),
                            word.get("bottom", 0)
                        )
                        blocks.append(TextBlock(
                            text=text,
                            bbox=bbox,
                            page=page_num,
                            font=word.get("fontname"),
                            size=word.get("size")
                        ))

        return blocks

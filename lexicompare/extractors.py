import io
import logging
from dataclasses import dataclass
from typing import List, Optional

import openpyxl
import pdfplumber
from docx import Document
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

logger = logging.getLogger(__name__)

CELL_SEPARATOR = " | "

TEXT_TYPE_MARKERS = ("json", "csv", "plain")
PDF_TYPE_MARKERS = ("pdf",)
WORD_TYPE_MARKERS = ("msword", "wordprocessingml.document")
SHEET_TYPE_MARKERS = ("spreadsheetml", "ms-excel")


@dataclass
class ExtractionResult:
    """Decoded text of one file plus the reason extraction stopped early, if it did."""
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _matches(file_type: str, markers) -> bool:
    return any(marker in file_type for marker in markers)


def _decode_utf8(file_bytes: bytes) -> ExtractionResult:
    try:
        return ExtractionResult(file_bytes.decode("utf-8"))
    except UnicodeDecodeError as e:
        # Keep everything that decoded cleanly before the bad byte
        partial = file_bytes[:e.start].decode("utf-8")
        return ExtractionResult(partial, f"UTF-8 decode error at byte {e.start}: {e.reason}")


def _extract_pdf(file_bytes: bytes) -> ExtractionResult:
    """
    Extract the text layer page by page.

    Each page's words are joined with a single space and pages are joined with
    a newline, so every PDF page becomes exactly one line.
    """
    page_texts: List[str] = []
    try:
        with pdfplumber.open(io.BytesIO(file_bytes)) as pdf:
            for page in pdf.pages:
                words = page.extract_words() or []
                page_texts.append(" ".join(word["text"] for word in words))
    except Exception as e:
        return ExtractionResult("\n".join(page_texts), f"PDF extraction failed after {len(page_texts)} page(s): {e}")
    return ExtractionResult("\n".join(page_texts))


def _table_rows(table: Table) -> List[str]:
    rows = []
    for row in table.rows:
        cells = [cell.text.strip() for cell in row.cells]
        if any(cells):
            rows.append(CELL_SEPARATOR.join(cells))
    return rows


def _extract_word(file_bytes: bytes) -> ExtractionResult:
    """Raw text of a word-processor document: paragraphs and table rows in body order, no styling."""
    lines: List[str] = []
    try:
        doc = Document(io.BytesIO(file_bytes))
        for element in doc.element.body.iterchildren():
            if element.tag == qn("w:p"):
                lines.append(Paragraph(element, doc).text)
            elif element.tag == qn("w:tbl"):
                lines.extend(_table_rows(Table(element, doc)))
    except Exception as e:
        return ExtractionResult("\n".join(lines), f"Word document extraction failed: {e}")
    return ExtractionResult("\n".join(lines))


def _extract_workbook(file_bytes: bytes) -> ExtractionResult:
    lines: List[str] = []
    try:
        wb = openpyxl.load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
        try:
            for sheetname in wb.sheetnames:
                ws = wb[sheetname]
                for row in ws.iter_rows(values_only=True):
                    cells = [str(c) if c is not None else "" for c in row]
                    if any(cell.strip() for cell in cells):
                        lines.append(CELL_SEPARATOR.join(cells))
        finally:
            wb.close()
    except Exception as e:
        return ExtractionResult("\n".join(lines), f"Workbook extraction failed: {e}")
    return ExtractionResult("\n".join(lines))


def extract_content(file_bytes: bytes, file_type: str) -> ExtractionResult:
    """
    Decode raw upload bytes into plain text, dispatching on the declared MIME type.

    Args:
        file_bytes (bytes): Raw file content
        file_type (str): Declared MIME type, trusted as given

    Returns:
        ExtractionResult: Text obtained (possibly partial or empty) and an error
        message when extraction did not complete. Never raises.
    """
    file_type = (file_type or "").lower()
    file_bytes = file_bytes or b""

    # ---------------- TXT / CSV / JSON ----------------
    if _matches(file_type, TEXT_TYPE_MARKERS):
        result = _decode_utf8(file_bytes)
    # ---------------- PDF ----------------
    elif _matches(file_type, PDF_TYPE_MARKERS):
        result = _extract_pdf(file_bytes)
    # ---------------- DOC / DOCX ----------------
    elif _matches(file_type, WORD_TYPE_MARKERS):
        result = _extract_word(file_bytes)
    # ---------------- XLSX ----------------
    elif _matches(file_type, SHEET_TYPE_MARKERS):
        result = _extract_workbook(file_bytes)
    else:
        logger.debug("No extractor for type %r, treating content as empty", file_type)
        return ExtractionResult("")

    if result.error:
        logger.warning("Extraction of %r content incomplete: %s", file_type, result.error)
    return result


def extract_text(file_bytes: bytes, file_type: str) -> str:
    """Best-effort decoded text for the given bytes; empty for unsupported types."""
    return extract_content(file_bytes, file_type).text

"""
Text extraction for uploaded study documents.

Plain text and Markdown are read directly, Word documents through
python-docx and PDFs through PyMuPDF. Legacy .doc files have no extractor.
A file that cannot be read or parsed is reported as a DocumentExtractionError
naming the file.
"""

import logging
import zipfile
from pathlib import Path
from typing import Callable, Optional, Sequence

import pymupdf
from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError

from .exceptions import DocumentExtractionError, UnsupportedDocumentError

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md", ".markdown"}
SUPPORTED_SUFFIXES = TEXT_SUFFIXES | {".docx", ".pdf"}

ProgressCallback = Callable[[float], None]


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _read_docx(path: Path) -> str:
    doc = DocxDocument(str(path))
    return "\n".join(p.text for p in doc.paragraphs if p.text.strip())


def _read_pdf(path: Path) -> str:
    with pymupdf.open(str(path)) as doc:
        return "\n".join(page.get_text("text") for page in doc)


def extract_text(path: Path) -> str:
    """
    Extract the text content of a single document.

    Raises:
        UnsupportedDocumentError: For .doc and unknown formats.
        DocumentExtractionError: If the file cannot be read or parsed.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".doc":
        raise UnsupportedDocumentError(
            f"Legacy Word document '{path.name}' is not supported. "
            "Save it as .docx or paste the text content directly."
        )
    if suffix not in SUPPORTED_SUFFIXES:
        raise UnsupportedDocumentError(
            f"Unsupported file type '{suffix or path.name}'. "
            f"Supported: {', '.join(sorted(SUPPORTED_SUFFIXES))}."
        )

    try:
        if suffix in TEXT_SUFFIXES:
            text = _read_text(path)
        elif suffix == ".docx":
            text = _read_docx(path)
        else:
            text = _read_pdf(path)
    except (
        OSError,
        UnicodeDecodeError,
        ValueError,
        RuntimeError,
        KeyError,
        zipfile.BadZipFile,
        PackageNotFoundError,
        pymupdf.FileDataError,
    ) as e:
        logger.error(f"Error extracting text from {path}: {e}")
        raise DocumentExtractionError(
            f"Failed to extract text from '{path.name}': {e}"
        ) from e

    logger.debug(f"Extracted {len(text)} characters from {path.name}")
    return text


def extract_text_from_files(
    paths: Sequence[Path],
    on_progress: Optional[ProgressCallback] = None,
) -> str:
    """
    Extract and concatenate text from several documents.

    Each document is preceded by a `--- <name> ---` header. `on_progress`
    receives the completed percentage after each file.
    """
    sections = []
    total = len(paths)
    for done, path in enumerate(paths, start=1):
        path = Path(path)
        sections.append(f"--- {path.name} ---\n{extract_text(path).strip()}")
        if on_progress is not None:
            on_progress(done / total * 100)
    return "\n\n".join(sections)

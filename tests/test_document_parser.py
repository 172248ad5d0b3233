import pytest

import pymupdf
from docx import Document

from studycards.document_parser import extract_text, extract_text_from_files
from studycards.exceptions import (
    DocumentExtractionError,
    UnsupportedDocumentError,
)


@pytest.fixture
def notes_txt(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("Mitochondria produce ATP.\n", encoding="utf-8")
    return path


@pytest.fixture
def notes_docx(tmp_path):
    path = tmp_path / "lecture.docx"
    doc = Document()
    doc.add_paragraph("Newton's first law")
    doc.add_paragraph("")
    doc.add_paragraph("An object at rest stays at rest.")
    doc.save(str(path))
    return path


@pytest.fixture
def notes_pdf(tmp_path):
    path = tmp_path / "slides.pdf"
    doc = pymupdf.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Water boils at 100 degrees Celsius.")
    doc.save(str(path))
    doc.close()
    return path


def test_extract_plain_text(notes_txt):
    assert extract_text(notes_txt) == "Mitochondria produce ATP.\n"


def test_extract_markdown(tmp_path):
    path = tmp_path / "summary.MD"
    path.write_text("# Cells\n\n- nucleus", encoding="utf-8")
    assert extract_text(path) == "# Cells\n\n- nucleus"


def test_extract_docx_skips_blank_paragraphs(notes_docx):
    assert extract_text(notes_docx) == (
        "Newton's first law\nAn object at rest stays at rest."
    )


def test_extract_pdf(notes_pdf):
    assert "Water boils at 100 degrees Celsius." in extract_text(notes_pdf)


def test_legacy_doc_rejected(tmp_path):
    path = tmp_path / "old.doc"
    path.write_bytes(b"\xd0\xcf\x11\xe0")
    with pytest.raises(UnsupportedDocumentError, match="Legacy Word document"):
        extract_text(path)


def test_unknown_suffix_rejected(tmp_path):
    path = tmp_path / "image.png"
    path.write_bytes(b"\x89PNG")
    with pytest.raises(UnsupportedDocumentError, match="Unsupported file type"):
        extract_text(path)


def test_unsupported_is_an_extraction_error(tmp_path):
    assert issubclass(UnsupportedDocumentError, DocumentExtractionError)


def test_missing_file_raises_extraction_error(tmp_path):
    with pytest.raises(DocumentExtractionError, match="missing.txt"):
        extract_text(tmp_path / "missing.txt")


def test_invalid_utf8_raises_extraction_error(tmp_path):
    path = tmp_path / "binary.txt"
    path.write_bytes(b"\xff\xfe\xfa")
    with pytest.raises(DocumentExtractionError):
        extract_text(path)


def test_multiple_files_get_headers_and_progress(notes_txt, notes_docx):
    progress = []

    text = extract_text_from_files(
        [notes_txt, notes_docx], on_progress=progress.append
    )

    assert text == (
        "--- notes.txt ---\nMitochondria produce ATP.\n\n"
        "--- lecture.docx ---\n"
        "Newton's first law\nAn object at rest stays at rest."
    )
    assert progress == [50.0, 100.0]


def test_multiple_files_stop_at_first_failure(notes_txt, tmp_path):
    bad = tmp_path / "scan.doc"
    bad.write_bytes(b"")
    progress = []

    with pytest.raises(UnsupportedDocumentError):
        extract_text_from_files([notes_txt, bad], on_progress=progress.append)
    assert progress == [50.0]


@pytest.mark.parametrize(
    "name, content",
    [
        ("bad.docx", b"just some plain text, not a zip package"),
        ("truncated.docx", b"PK\x03\x04 broken"),
        ("bad.pdf", b"not a pdf at all"),
    ],
)
def test_corrupt_document_raises_extraction_error(tmp_path, name, content):
    path = tmp_path / name
    path.write_bytes(content)

    with pytest.raises(DocumentExtractionError, match=name) as excinfo:
        extract_text(path)
    assert not isinstance(excinfo.value, UnsupportedDocumentError)

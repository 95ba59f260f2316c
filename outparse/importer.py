"""Document import — turns uploaded files into plain text for the buffer."""
import io
import logging
from pathlib import Path
from typing import Union

from docx import Document

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = ('.txt', '.md')
DOCX_SUFFIXES = ('.docx',)
SUPPORTED_SUFFIXES = TEXT_SUFFIXES + DOCX_SUFFIXES


class ImportFailure(Exception):
    """The file could not be read as text."""


def read_document(filename: str, data: bytes) -> str:
    """Extract raw text from an uploaded file's bytes.

    The result is not truncated here; TextBuffer.set_content does that.
    """
    suffix = Path(filename).suffix.lower()
    if suffix in DOCX_SUFFIXES:
        return _read_docx(filename, data)
    if suffix in TEXT_SUFFIXES or not suffix:
        return _read_text(filename, data)
    raise ImportFailure(f"Unsupported file type: {suffix}")


def read_path(path: Union[str, Path]) -> str:
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise ImportFailure(f"Cannot read {path}: {e}") from e
    return read_document(path.name, data)


def _read_text(filename: str, data: bytes) -> str:
    try:
        return data.decode('utf-8-sig')
    except UnicodeDecodeError as e:
        logger.warning("Failed to decode %s as UTF-8", filename)
        raise ImportFailure(f"{filename} is not UTF-8 text") from e


def _read_docx(filename: str, data: bytes) -> str:
    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:
        # python-docx raises a mix of zipfile/lxml/KeyError on bad input
        logger.warning("Error reading docx %s: %s", filename, e)
        raise ImportFailure(f"Failed to read {filename}. Please try a .txt file.") from e
    return '\n'.join(p.text for p in doc.paragraphs)

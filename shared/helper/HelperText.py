"""Text helpers for ingestion: segmentation into line-addressable chunks and
normalisation of text produced by the conversion service."""

import bisect
import re

from pydantic import BaseModel

from shared.errors import ValidationError

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_TRAILING_SPACE_BEFORE_NEWLINE = re.compile(r"[ \t\r\f\v]+\n")
_EXCESS_BLANK_LINES = re.compile(r"\n{3,}")

_MIME_ALIASES: dict[str, str] = {
    "text/plain": "txt",
    "text/markdown": "txt",
    "application/pdf": "pdf",
    "application/x-pdf": "pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
}


class Segment(BaseModel):
    """A window of the source text with its 1-indexed inclusive line range."""

    content: str
    start_line: int
    end_line: int


##########################################
############## SEGMENTATION ##############
##########################################

def segment_text(text: str, chunk_size: int, overlap: int) -> list[Segment]:
    """Split text into overlapping character windows annotated with line numbers.

    A window of chunk_size characters advances by chunk_size - overlap until the
    remaining tail fits into one window, which is emitted as the final segment.
    This yields ceil((len - overlap) / (chunk_size - overlap)) segments, at least
    one for any non-empty text.

    Args:
        text (str): The full document text.
        chunk_size (int): Window size in characters.
        overlap (int): Characters shared by consecutive windows.

    Returns:
        list[Segment]: Ordered segments; empty for empty or whitespace-only text.

    Raises:
        ValidationError: If chunk_size <= 0, overlap < 0 or overlap >= chunk_size.
    """
    if chunk_size <= 0:
        raise ValidationError(f"Chunk size must be positive, got {chunk_size}.")
    if overlap < 0 or overlap >= chunk_size:
        raise ValidationError(f"Overlap must be in [0, chunk size), got overlap={overlap} chunk_size={chunk_size}.")
    if not text or not text.strip():
        return []

    newline_offsets = [i for i, char in enumerate(text) if char == "\n"]

    def line_of(offset: int) -> int:
        # number of newlines strictly before offset, 1-indexed
        return bisect.bisect_left(newline_offsets, offset) + 1

    step = chunk_size - overlap
    segments: list[Segment] = []
    start = 0
    while True:
        end = min(start + chunk_size, len(text))
        segments.append(
            Segment(
                content=text[start:end],
                start_line=line_of(start),
                end_line=line_of(end - 1),
            )
        )
        if end >= len(text):
            break
        start += step
    return segments


##########################################
############ NORMALISATION ###############
##########################################

def normalize_extracted_text(raw: str) -> str:
    """Clean text returned by a document extractor.

    Drops control characters, trailing whitespace on every line and runs of more
    than one blank line.
    """
    text = _CONTROL_CHARS.sub("", raw.replace("\r\n", "\n"))
    text = _TRAILING_SPACE_BEFORE_NEWLINE.sub("\n", text)
    text = _EXCESS_BLANK_LINES.sub("\n\n", text)
    return "\n".join(line.rstrip() for line in text.split("\n")).strip()


def detect_file_kind(file_name: str, mime_type: str | None = None) -> str | None:
    """Return "txt", "pdf" or "docx" from the extension, falling back to the mime type."""
    lower_name = file_name.lower()
    for extension in ("txt", "pdf", "docx"):
        if lower_name.endswith(f".{extension}"):
            return extension
    if mime_type:
        normalized = mime_type.split(";", 1)[0].strip().lower()
        return _MIME_ALIASES.get(normalized)
    return None


def derive_txt_file_name(original_name: str) -> str:
    """Replace the extension of a file name with .txt ("report.pdf" -> "report.txt")."""
    trimmed = original_name.strip()
    if not trimmed:
        return "untitled.txt"
    base = re.sub(r"\.[^.]+$", "", trimmed).strip() or "untitled"
    return f"{base}.txt"


def sanitize_file_name(file_name: str) -> str:
    """Make a file name safe for use inside an object key."""
    trimmed = file_name.strip()
    if not trimmed:
        return "untitled.txt"
    normalized = re.sub(r"\s+", "-", trimmed)
    normalized = re.sub(r"[^a-zA-Z0-9_.-]", "", normalized)
    normalized = re.sub(r"-+", "-", normalized)
    return normalized.lower() or "untitled.txt"

"""Submission parameter checks shared by submit, revise and dry-run validation.

Text lengths are measured in UTF-8 bytes.
"""

from typing import Any, List, Sequence

from doc_catalog.errors import InvalidDocumentSize, InvalidMetadata
from doc_catalog.models.schemas import DocumentMetadata

MAX_NAME_BYTES = 80
MAX_SUMMARY_BYTES = 256
MAX_TAGS = 8
MAX_TAG_BYTES = 40
MIN_BYTE_COUNT = 1
BYTE_COUNT_LIMIT = 2_000_000_000  # exclusive


def _check_text(field: str, value: Any, max_bytes: int) -> str:
    if not isinstance(value, str):
        raise InvalidMetadata(field, value, "must be text")
    try:
        length = len(value.encode("utf-8"))
    except UnicodeEncodeError:
        raise InvalidMetadata(field, value, "must be valid UTF-8 text")
    if length < 1:
        raise InvalidMetadata(field, value, "must not be empty")
    if length > max_bytes:
        raise InvalidMetadata(field, value, f"must be at most {max_bytes} bytes, got {length}")
    return value


def validate_name(name: Any) -> str:
    return _check_text("name", name, MAX_NAME_BYTES)


def validate_summary(summary: Any) -> str:
    return _check_text("summary", summary, MAX_SUMMARY_BYTES)


def validate_byte_count(byte_count: Any) -> int:
    # bool is an int subclass but never a size
    if isinstance(byte_count, bool) or not isinstance(byte_count, int):
        raise InvalidDocumentSize(byte_count, "must be an integer")
    if byte_count < MIN_BYTE_COUNT:
        raise InvalidDocumentSize(byte_count, f"must be at least {MIN_BYTE_COUNT}")
    if byte_count >= BYTE_COUNT_LIMIT:
        raise InvalidDocumentSize(byte_count, f"must be below {BYTE_COUNT_LIMIT}")
    return byte_count


def validate_tags(tags: Any) -> List[str]:
    if isinstance(tags, (str, bytes)) or not isinstance(tags, Sequence):
        raise InvalidMetadata("tags", tags, "must be a list of text")
    if len(tags) < 1:
        raise InvalidMetadata("tags", tags, "must contain at least one tag")
    if len(tags) > MAX_TAGS:
        raise InvalidMetadata("tags", tags, f"must contain at most {MAX_TAGS} tags, got {len(tags)}")
    for index, tag in enumerate(tags):
        _check_text(f"tags[{index}]", tag, MAX_TAG_BYTES)
    return list(tags)


def validate_submission(
    name: Any,
    byte_count: Any,
    summary: Any,
    tags: Any,
) -> DocumentMetadata:
    """Check all four fields in order and return them as metadata.

    Raises:
        InvalidMetadata: If name, summary or tags break their constraints
        InvalidDocumentSize: If byte_count is out of range
    """
    return DocumentMetadata(
        name=validate_name(name),
        byte_count=validate_byte_count(byte_count),
        summary=validate_summary(summary),
        tags=validate_tags(tags),
    )

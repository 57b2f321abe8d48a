"""Upload checks and decoding shared by the import entry points and the CLI.

Whole-file problems (empty payload, unexpected extension or content type) are
rejected here, before any parsing starts.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path, PurePath

from ledger_db.models.ledger import IMPORT_FORMAT_CARD_STATEMENT, IMPORT_FORMAT_DELIMITED

from ..errors import ImportRejectedError

# Accepted (extensions, content types) per import format. Card statements are
# accepted either as the PDF itself or as text already extracted from it.
ACCEPTED_UPLOADS: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    IMPORT_FORMAT_DELIMITED: (
        frozenset({".csv"}),
        frozenset({"text/csv", "application/vnd.ms-excel", "text/plain"}),
    ),
    IMPORT_FORMAT_CARD_STATEMENT: (
        frozenset({".pdf", ".txt"}),
        frozenset({"application/pdf", "text/plain"}),
    ),
}


def validate_upload(
    file_name: str,
    data: bytes | str,
    *,
    fmt: str,
    content_type: str | None = None,
) -> None:
    """Reject an upload that cannot be imported as ``fmt``.

    ``content_type`` is checked only when the caller declared one; parameters
    such as ``; charset=utf-8`` are ignored.
    """

    try:
        extensions, content_types = ACCEPTED_UPLOADS[fmt]
    except KeyError:
        raise ValueError(f"Unsupported import format: {fmt!r}") from None

    if not data:
        raise ImportRejectedError("file is empty", file_name=file_name)

    suffix = PurePath(file_name).suffix.lower()
    if suffix not in extensions:
        raise ImportRejectedError(
            f"expected a {'/'.join(sorted(extensions))} file", file_name=file_name
        )

    if content_type is not None:
        media = content_type.split(";", 1)[0].strip().lower()
        if media not in content_types:
            raise ImportRejectedError(
                f"unsupported content type {content_type!r}", file_name=file_name
            )


def decode_text(data: bytes | str) -> str:
    """Decode uploaded bytes as UTF-8 (BOM tolerated), falling back to Latin-1."""

    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def read_upload(path: str | PathLike[str]) -> bytes:
    """Read a file from disk for import."""

    return Path(path).read_bytes()


__all__ = ["ACCEPTED_UPLOADS", "validate_upload", "decode_text", "read_upload"]

from __future__ import annotations

import unicodedata


def decode_spool(data: bytes) -> str:
    """Decode captured spool output as UTF-8.

    Bytes that are not valid UTF-8 (stray EBCDIC conversions, binary records)
    become replacement characters, so the report lines around them still parse.
    Text is canonicalized to NFC to keep member names comparable across runs.
    """
    text = data.decode("utf-8", errors="replace")
    return unicodedata.normalize("NFC", text)

"""
Signature-based content sniffing for byte buffers.

Architectural role:
- Generic fallback used by `content_normalizer.detect_kind` once the
  container-specific checks (ISO-BMFF brands, compound documents, Office ZIPs)
  have not matched.
- Follows the WHATWG mime sniffing order: markup first, then exact binary
  signatures, then a text/binary decision.

Scope:
- Only the first `SNIFF_LEN` bytes are inspected.
- Returned values may carry a charset parameter for text types
  (`text/plain; charset=utf-8`).
"""

import re
from typing import Callable

SNIFF_LEN = 512

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN_UTF8 = "text/plain; charset=utf-8"

_WHITESPACE = b"\t\n\x0c\r "

_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
)

# (prefix, mime) pairs matched against the start of the buffer
_EXACT_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", TEXT_PLAIN_UTF8),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
    (b"ID3", "audio/mpeg"),
    (b"OggS\x00", "audio/ogg"),
    (b"fLaC", "audio/flac"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"\x1aE\xdf\xa3", "video/webm"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
)

# RIFF / IFF containers: (outer tag, form type at offset 8, mime)
_CONTAINER_SIGNATURES = (
    (b"RIFF", b"WEBPVP", "image/webp"),
    (b"RIFF", b"WAVE", "audio/wav"),
    (b"RIFF", b"AVI ", "video/avi"),
    (b"FORM", b"AIFF", "audio/aiff"),
)

_MP3_FRAME_SYNC = re.compile(rb"^\xff[\xe2-\xe3\xf2-\xf3\xfa-\xfb]")


def _skip_whitespace(data: bytes) -> bytes:
    return data.lstrip(_WHITESPACE)


def _sniff_html(data: bytes) -> str | None:
    data = _skip_whitespace(data)
    upper = data[:32].upper()

    for tag in _HTML_TAGS:
        if not upper.startswith(tag):
            continue
        # the tag must be terminated by a space or '>'
        terminator = data[len(tag):len(tag) + 1]
        if terminator in (b" ", b">"):
            return "text/html; charset=utf-8"

    if data.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"

    return None


def _sniff_exact(data: bytes) -> str | None:
    for prefix, mime in _EXACT_SIGNATURES:
        if data.startswith(prefix):
            return mime
    return None


def _sniff_container(data: bytes) -> str | None:
    for outer, form, mime in _CONTAINER_SIGNATURES:
        if data[:4] == outer and data[8:8 + len(form)] == form:
            return mime
    return None


def _sniff_mp4(data: bytes) -> str | None:
    if len(data) < 12:
        return None

    box_size = int.from_bytes(data[:4], "big")
    if box_size % 4 != 0 or box_size > len(data) or box_size < 12:
        return None
    if data[4:8] != b"ftyp":
        return None

    for offset in range(8, box_size, 4):
        if offset == 12:
            # minor version, not a brand
            continue
        if data[offset:offset + 3] == b"mp4":
            return "video/mp4"
    return None


def _sniff_mp3_frame(data: bytes) -> str | None:
    if _MP3_FRAME_SYNC.match(data):
        return "audio/mpeg"
    return None


def _sniff_text(data: bytes) -> str:
    for b in data:
        if b <= 0x08 or b == 0x0B or 0x0E <= b <= 0x1A or 0x1C <= b <= 0x1F:
            return OCTET_STREAM
    return TEXT_PLAIN_UTF8


_SNIFFERS: tuple[Callable[[bytes], str | None], ...] = (
    _sniff_html,
    _sniff_exact,
    _sniff_container,
    _sniff_mp4,
    _sniff_mp3_frame,
)


def sniff_content_type(data: bytes) -> str:
    """Return the mime type of `data` from its leading signature bytes.

    Falls back to `text/plain; charset=utf-8` for buffers without binary
    control bytes and to `application/octet-stream` otherwise. An empty buffer
    is treated as plain text.
    """
    head = bytes(data[:SNIFF_LEN])

    for sniff in _SNIFFERS:
        mime = sniff(head)
        if mime:
            return mime

    return _sniff_text(head)

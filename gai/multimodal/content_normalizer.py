"""
Content normalization for multimodal conversation input.

Architectural role:
- Detect the mime type of raw input bytes (Office containers, ISO-BMFF images,
  legacy compound documents, then generic signature sniffing).
- Encode and decode data URIs, the storage format of non-text content items.
- Convert images into a backend-friendly format (JPEG/PNG) and extract plain text
  from binary document containers.
- Turn raw file bytes into a tagged `ContentItem` for the next user turn.

Processing lifecycle (`to_content_item`):
1. Sniff the mime type with `detect_kind`.
2. Route `image/*` through `ensure_supported_image`, `audio/*` through
   `ensure_supported_audio`.
3. Wrap everything else as a data-URI attachment.

Error handling strategy:
- Malformed data URIs and broken containers raise `DecodeError`.
- Media without a decoder raises `UnsupportedFormat`.
- `ensure_plain_text` is the one best-effort path: unknown binary types are
  returned as bytes reinterpreted as text instead of failing.

Determinism considerations:
- All functions are pure for fixed input bytes and library versions.
"""

import base64
import binascii
import io
import logging
import zipfile

import docx
import pandas as pd
import pdfplumber
from bs4 import BeautifulSoup
from PIL import Image, UnidentifiedImageError
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE

from gai.core.conversation_types import ContentItem, ContentKind
from gai.errors import DecodeError, UnsupportedFormat
from gai.multimodal.mime_sniffer import sniff_content_type


logger = logging.getLogger(__name__)


# ============================================================
# MIME CONSTANTS
# ============================================================

MIME_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MIME_PPTX = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
MIME_XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MIME_XLS = "application/vnd.ms-excel"

# ISO-BMFF "ftyp" brands not known to generic sniffing
_FTYP_BRANDS = {
    b"heic": "image/heic",
    b"heix": "image/heic",
    b"hevc": "image/heic",
    b"hevx": "image/heic",
    b"mif1": "image/heif",
    b"msf1": "image/heif",
    b"avif": "image/avif",
}

_COMPOUND_DOCUMENT_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

# checked in this order, the folder prefix decides the Office flavour
_OFFICE_FOLDERS = (
    ("xl", MIME_XLSX),
    ("ppt", MIME_PPTX),
    ("word", MIME_DOCX),
)

# images that pass through unchanged
_PASSTHROUGH_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png"}

# images that Pillow decodes and we re-encode to PNG
_CONVERTIBLE_IMAGE_TYPES = {"image/bmp", "image/gif", "image/tiff", "image/webp"}

_PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"}

# between slides and between sheets
_BLOCK_SEPARATOR = "\n\n\n"


def mime_essence(mime: str) -> str:
    """Return `type/subtype` of a mime string, lowercased and without parameters."""
    return mime.split(";", 1)[0].strip().lower()


# ============================================================
# DETECTION
# ============================================================

def is_office_file(data: bytes, folder_name: str) -> bool:
    """
    Return whether `data` is an Office Open XML ZIP with entries under `folder_name/`.

    Both a `[Content_Types].xml` entry and at least one file below the folder are
    required. Non-ZIP input is simply not an Office file.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            names = archive.namelist()
    except (zipfile.BadZipFile, ValueError, OSError):
        return False

    prefix = f"{folder_name}/"

    has_content_types = "[Content_Types].xml" in names
    has_folder = any(len(n) > len(prefix) and n.startswith(prefix) for n in names)

    return has_content_types and has_folder


def is_docx(data: bytes) -> bool:
    return is_office_file(data, "word")


def is_pptx(data: bytes) -> bool:
    return is_office_file(data, "ppt")


def is_xlsx(data: bytes) -> bool:
    return is_office_file(data, "xl")


def detect_kind(data: bytes) -> str:
    """
    Detect the mime type of `data`.

    Checks, in order:
    - ISO-BMFF `ftyp` brand at bytes 8-12 (HEIC/HEIF/AVIF),
    - legacy compound document header (old Excel),
    - Office Open XML ZIP layout (XLSX, PPTX, DOCX),
    - generic signature sniffing.
    """
    if len(data) >= 12 and data[4:8] == b"ftyp":
        mime = _FTYP_BRANDS.get(bytes(data[8:12]))
        if mime:
            return mime

    if len(data) >= 8 and data[:8] == _COMPOUND_DOCUMENT_MAGIC:
        return MIME_XLS

    if data[:4] == b"PK\x03\x04":
        for folder, mime in _OFFICE_FOLDERS:
            if is_office_file(data, folder):
                return mime

    return sniff_content_type(data)


def maybe_binary(data: bytes) -> bool:
    """Heuristic: true if `data` holds NUL or control bytes other than common whitespace."""
    for b in data:
        if b < 7 or 13 < b < 32:
            return True
    return False


# ============================================================
# DATA URIS
# ============================================================

def encode_data_uri(data: bytes, mime: str | None = None) -> str:
    """Encode `data` as `data:<mime>;base64,<payload>` (mime sniffed when omitted)."""
    if mime is None:
        mime = detect_kind(data)

    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_essence(mime)};base64,{encoded}"


def split_data_uri(uri: str) -> tuple[str, str]:
    """
    Split a data URI into its base64 payload and lowercased mime type.

    Raises:
        DecodeError: if there is no comma separating header and payload.
    """
    header, sep, payload = uri.partition(",")
    if not sep:
        raise DecodeError("invalid data URI")

    if header.startswith("data:"):
        header = header[len("data:"):]

    mime = header.split(";", 1)[0].strip().lower()
    return payload, mime


def decode_data_uri(uri: str) -> tuple[bytes, str]:
    """
    Decode a base64 data URI into its bytes and mime type.

    Raises:
        DecodeError: if the `;base64,` marker is missing or the payload is not
            valid base64.
    """
    marker = ";base64,"

    idx = uri.find(marker)
    if idx < 0:
        raise DecodeError("not a base64 data URI")

    _, mime = split_data_uri(uri)
    payload = uri[idx + len(marker):]

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as err:
        raise DecodeError(f"invalid base64 payload in data URI: {err}") from err

    return data, mime


def strip_data_uri_prefix(value: str) -> str:
    """Return the payload after the first comma, or `value` unchanged if there is none."""
    _, sep, payload = value.partition(",")
    if not sep:
        return value
    return payload


def ensure_data_uri(value: str) -> str:
    """
    Return `value` as a data URI.

    Data URIs pass through. Bare base64 is decoded only to sniff its mime type
    and is then prefixed with `data:<mime>;base64,`.

    Raises:
        DecodeError: if `value` is neither a data URI nor valid base64.
    """
    if value.startswith("data:"):
        return value

    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as err:
        raise DecodeError(f"content is neither a data URI nor base64: {err}") from err

    return f"data:{mime_essence(detect_kind(data))};base64,{value}"


# ============================================================
# IMAGES / AUDIO
# ============================================================

def convert_image_to_png(data: bytes) -> bytes:
    """Decode an image with Pillow and re-encode it as PNG."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            if img.mode not in _PNG_MODES:
                img = img.convert("RGBA")

            out = io.BytesIO()
            img.save(out, format="PNG")
    except (UnidentifiedImageError, OSError, ValueError) as err:
        raise UnsupportedFormat(f"could not convert image: {err}") from err

    return out.getvalue()


def ensure_supported_image(data: bytes) -> str:
    """
    Return `data` as a JPEG or PNG data URI.

    JPEG and PNG pass through unchanged; BMP, GIF, TIFF and WEBP are converted to
    PNG.

    Raises:
        UnsupportedFormat: for non-images and image types without a decoder
            (HEIC, AVIF, icons, ...).
    """
    mime = mime_essence(detect_kind(data))

    if mime in _PASSTHROUGH_IMAGE_TYPES:
        return encode_data_uri(data, mime)

    if mime in _CONVERTIBLE_IMAGE_TYPES:
        logger.debug("Converting %s image to PNG ...", mime)
        return encode_data_uri(convert_image_to_png(data), "image/png")

    raise UnsupportedFormat(f"mime type '{mime}' is not a supported image format")


def ensure_supported_audio(data: bytes) -> str:
    """
    Return `data` as an audio data URI.

    Raises:
        UnsupportedFormat: if the sniffed type is not `audio/*`.
    """
    mime = mime_essence(detect_kind(data))
    if not mime.startswith("audio/"):
        raise UnsupportedFormat(f"mime type '{mime}' is not a supported audio format")

    return encode_data_uri(data, mime)


# ============================================================
# PLAIN TEXT EXTRACTION
# ============================================================

def _extract_pptx(data: bytes) -> str:
    """Text runs of every slide, in slide order, one block per slide."""

    def iter_runs(shapes):
        for shape in shapes:
            if shape.shape_type == MSO_SHAPE_TYPE.GROUP:
                yield from iter_runs(shape.shapes)
                continue
            if not shape.has_text_frame:
                continue
            for paragraph in shape.text_frame.paragraphs:
                for run in paragraph.runs:
                    yield run.text

    presentation = Presentation(io.BytesIO(data))

    texts = []
    for slide in presentation.slides:
        texts.append("".join(f"{t}\n" for t in iter_runs(slide.shapes)))

    return _BLOCK_SEPARATOR.join(texts)


def _extract_docx(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    return "\n".join(p.text for p in document.paragraphs)


def _extract_spreadsheet(data: bytes) -> str:
    """Every sheet serialized as CSV, sheets separated by blank lines."""
    sheets = pd.read_excel(
        io.BytesIO(data),
        sheet_name=None,
        header=None,
        dtype=str,
        keep_default_na=False,
    )

    blocks = []
    for _, frame in sheets.items():
        blocks.append(frame.to_csv(index=False, header=False, lineterminator="\n"))

    return _BLOCK_SEPARATOR.join(blocks)


def _extract_html(data: bytes) -> str:
    soup = BeautifulSoup(data, "html.parser")

    # active content never becomes text
    for tag in soup(["script", "style", "noscript", "iframe", "object", "embed"]):
        tag.decompose()

    root = soup.body or soup
    return root.get_text().strip()


def _extract_pdf(data: bytes) -> str:
    text = []

    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            text.append(page.extract_text() or "")

    return "\n".join(text)


_TEXT_EXTRACTORS = {
    MIME_PPTX: _extract_pptx,
    MIME_DOCX: _extract_docx,
    MIME_XLSX: _extract_spreadsheet,
    MIME_XLS: _extract_spreadsheet,
    "text/html": _extract_html,
    "text/htm": _extract_html,
    "application/pdf": _extract_pdf,
}


def ensure_plain_text(data: bytes) -> str:
    """
    Extract plain text from `data` based on its detected container type.

    Supported containers: PPTX, DOCX, XLSX/XLS, HTML and PDF. Every other type is
    decoded as UTF-8 with invalid sequences replaced.

    Raises:
        DecodeError: if a recognized container cannot be parsed.
    """
    mime = mime_essence(detect_kind(data))

    extract = _TEXT_EXTRACTORS.get(mime)
    if extract is None:
        return data.decode("utf-8", errors="replace")

    logger.debug("Extracting plain text from %s ...", mime)
    try:
        return extract(data)
    except Exception as err:
        raise DecodeError(f"could not extract text from '{mime}': {err}") from err


# ============================================================
# CONTENT ITEMS
# ============================================================

def to_content_item(data: bytes) -> ContentItem:
    """
    Normalize raw file bytes into a content item for a user turn.

    - `image/*` -> `image` item (JPEG/PNG data URI)
    - `audio/*` -> `audio` item
    - everything else -> `attachment` item
    """
    mime = mime_essence(detect_kind(data))

    if mime.startswith("image/"):
        return ContentItem(type=ContentKind.IMAGE, content=ensure_supported_image(data))

    if mime.startswith("audio/"):
        return ContentItem(type=ContentKind.AUDIO, content=ensure_supported_audio(data))

    return ContentItem(type=ContentKind.ATTACHMENT, content=encode_data_uri(data, mime))

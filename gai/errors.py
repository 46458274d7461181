"""
Exception types raised by the gai core.

All errors reach the caller unchanged; the outer CLI renders them to standard
error and exits non-zero.
"""


class GaiError(Exception):
    """Base exception class for all gai errors."""
    pass


class ConfigurationError(GaiError):
    """Raised when a provider, model or API key is missing or invalid.

    Always detected before any network or file I/O.
    """
    pass


class UnsupportedContentKind(GaiError):
    """Raised when a backend cannot carry a content kind (for example audio to Ollama)."""
    pass


class UnsupportedFormat(GaiError):
    """Raised when input media has no decoder or converter."""
    pass


class UnsupportedAudioFormat(UnsupportedFormat):
    """Raised when audio is neither mp3 nor wav for the OpenAI backend."""
    pass


class DecodeError(GaiError):
    """Raised for malformed data URIs, JSON payloads or persisted documents."""
    pass


class HTTPError(GaiError):
    """Raised for a non-2xx backend response.

    Attributes:
        status_code: HTTP status returned by the backend.
        body: Best-effort decoded response body.
    """

    def __init__(self, status_code: int, body: str = "", url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url

        message = f"unexpected response {status_code}"
        if url:
            message += f" from {url}"
        if body:
            message += f": {body}"
        super().__init__(message)


class StoreIOError(GaiError):
    """Raised when the persisted conversation file cannot be read or written."""
    pass

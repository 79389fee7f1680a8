"""
Image storage collaborators.

Functions:
    fetch_image: Download or open an image and decode it to RGBA
    decode_image: Decode raw bytes to an RGBA PIL Image
    is_supported_format: Check a path's extension against supported formats
    is_local_reference: True for file:// URLs and filesystem paths

Classes:
    ImageStore: Protocol the generation pipeline expects from storage
    DirectoryImageStore: Stores uploaded images in a directory and hands
        back URLs for them
"""

from pathlib import Path
from typing import Any, Callable, Optional, Protocol
from urllib.parse import unquote, urlparse
import io
import logging
import time
import uuid

import requests
from PIL import Image, UnidentifiedImageError

from SV_Libs.constants import (
    CONTENT_TYPE_EXTENSIONS,
    DEFAULT_FETCH_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    FETCH_RETRY_WAIT,
    FILENAME_REPLACEMENT_CHAR,
    SAFE_FILENAME_CHARS,
    SUPPORTED_STANDARD_IMAGES,
)
from SV_Libs.errors import FetchError, UploadError

logger = logging.getLogger(__name__)


class ImageStore(Protocol):
    """Object storage: upload bytes for a URL, fetch a URL as an RGBA image."""

    def upload_image(self, data: bytes, content_type: str = "image/jpeg", prefix: str = "upload") -> str:
        ...

    def fetch_image(self, url: str) -> Any:
        ...


def is_supported_format(file_path: Path) -> bool:
    """True if the file extension is a supported raster format."""
    return Path(file_path).suffix.lower() in SUPPORTED_STANDARD_IMAGES


def is_local_reference(url: str) -> bool:
    """True if `url` names a file on this machine (file:// URL, plain or drive-letter path)."""
    text = str(url)
    scheme = urlparse(text).scheme
    return scheme in ("", "file") or (len(scheme) == 1 and text[1:2] == ":")


def decode_image(data: bytes, source: str = "<bytes>") -> Any:
    """
    Decode raw bytes to an RGBA PIL Image.

    Raises:
        FetchError: If the bytes are not a decodable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise FetchError(f"Could not decode image from {source}: {e}") from e


def _open_local(path: Path) -> Any:
    if not path.exists():
        raise FetchError(f"Image file not found: {path}")

    if not path.is_file():
        raise FetchError(f"Image path is not a file: {path}")

    try:
        with Image.open(path) as img:
            img.load()
            return img.convert("RGBA")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise FetchError(f"Could not decode image {path}: {e}") from e


def fetch_image(
    url: str,
    session: Optional[requests.Session] = None,
    retries: int = DEFAULT_FETCH_RETRIES,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
    retry_wait: float = FETCH_RETRY_WAIT,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """
    Fetch an image and decode it to RGBA.

    http(s) URLs are downloaded with GET, retried on transport errors and
    5xx responses up to `retries` attempts. file:// URLs and plain paths
    are opened from disk.

    Args:
        url: http(s) URL, file:// URL, or filesystem path
        session: requests.Session to reuse (module-level requests by default)
        retries: Total download attempts
        timeout: Per-request timeout in seconds
        retry_wait: Seconds between download attempts

    Returns:
        RGBA PIL Image

    Raises:
        FetchError: If the image cannot be fetched or decoded
    """
    if not url:
        raise FetchError("No image URL given")

    parsed = urlparse(str(url))

    if is_local_reference(url):
        path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(str(url))
        return _open_local(path)

    if parsed.scheme not in ("http", "https"):
        raise FetchError(f"Unsupported image URL scheme: {parsed.scheme}")

    if retries < 1:
        raise ValueError(f"retries must be positive, got {retries}")

    http = session if session is not None else requests
    last_error = ""

    for attempt in range(1, retries + 1):
        try:
            response = http.get(url, timeout=timeout)
        except requests.RequestException as e:
            last_error = str(e)
            logger.warning(f"Image download attempt {attempt}/{retries} failed: {e}")
        else:
            if 200 <= response.status_code < 300:
                return decode_image(response.content, url)

            last_error = f"HTTP {response.status_code}"
            if response.status_code < 500:
                break
            logger.warning(f"Image download attempt {attempt}/{retries} failed: {last_error}")

        if attempt < retries and retry_wait > 0:
            sleep(retry_wait)

    raise FetchError(f"Failed to download image {url}: {last_error}")


class DirectoryImageStore:
    """
    Stores uploaded images in a directory.

    Stored files are named "<millis>-<prefix>-<random>.<ext>". When
    public_base_url is set, returned URLs are "<public_base_url>/<name>",
    otherwise file:// URIs.
    """

    def __init__(self, directory: Any, public_base_url: Optional[str] = None):
        self.directory = Path(directory)
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def _safe_prefix(self, prefix: str) -> str:
        safe = "".join(
            c if c.isalnum() or c in SAFE_FILENAME_CHARS else FILENAME_REPLACEMENT_CHAR
            for c in prefix
        ).strip(FILENAME_REPLACEMENT_CHAR)
        return safe or "upload"

    def url_for(self, path: Path) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{path.name}"
        return path.resolve().as_uri()

    def path_for(self, url: str) -> Optional[Path]:
        """Local path of a URL this store handed out, or None."""
        if self.public_base_url and url.startswith(self.public_base_url + "/"):
            name = unquote(url[len(self.public_base_url) + 1:])
            # Only plain file names inside the store directory
            if not name or Path(name).name != name:
                return None
            return self.directory / name

        parsed = urlparse(url)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
            if path.resolve().parent == self.directory.resolve():
                return path
        return None

    def upload_image(self, data: bytes, content_type: str = "image/jpeg", prefix: str = "upload") -> str:
        """
        Store image bytes and return their URL.

        Raises:
            UploadError: If the file cannot be written
        """
        if not data:
            raise UploadError("Refusing to store an empty image")

        extension = CONTENT_TYPE_EXTENSIONS.get(content_type, ".bin")
        name = f"{int(time.time() * 1000)}-{self._safe_prefix(prefix)}-{uuid.uuid4().hex[:8]}{extension}"

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path = self.directory / name
            path.write_bytes(data)
        except OSError as e:
            raise UploadError(f"Upload failed: {e}") from e

        url = self.url_for(path)
        logger.info(f"Stored {len(data)} bytes as {url}")
        return url

    def fetch_image(self, url: str, **kwargs: Any) -> Any:
        """Fetch an image, reading files this store owns straight from disk."""
        local = self.path_for(url)
        if local is not None:
            return _open_local(local)
        return fetch_image(url, **kwargs)

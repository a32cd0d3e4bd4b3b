"""URL helpers applied before and during a probe."""
from __future__ import annotations

import base64
import binascii
import posixpath
from urllib.parse import unquote, urljoin, urlsplit

_SCHEMES = ("http:", "https:", "ftp:")


def is_base64(value: str) -> bool:
    """True if *value* is strict base64 that decodes to UTF-8 text."""
    if not value:
        return False
    try:
        base64.b64decode(value, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return False
    return True


def normalize_url(raw: str) -> str:
    """
    Turn user input into a fetchable URL.

    Base64 input is decoded first, a missing scheme defaults to ``http://``,
    and a path whose last segment has no extension (and no query) gets a
    trailing slash so it is treated as a directory.
    """
    url = raw.strip()
    if not url:
        raise ValueError("URL must not be empty")

    if is_base64(url):
        url = base64.b64decode(url).decode("utf-8").strip()

    if not any(scheme in url for scheme in _SCHEMES):
        url = f"http://{url}"

    parts = urlsplit(url)
    if not parts.netloc:
        raise ValueError(f"Not a valid URL: {raw!r}")

    if url.endswith("/") or parts.query or parts.fragment:
        return url

    last_segment = posixpath.basename(unquote(parts.path))
    if not posixpath.splitext(last_segment)[1]:
        url += "/"
    return url


def url_directory(url: str) -> str:
    """URL of the directory that contains *url* (``http://h/a/b.iso`` -> ``http://h/a/``)."""
    return urljoin(url, ".")

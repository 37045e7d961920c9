"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to Content-Type values for the files this app sends:
the HTML views, the client assets under /assets and the favicon.

    views/index.html        →  text/html; charset=utf-8
    client/style.css        →  text/css; charset=utf-8
    client/img/favicon.png  →  image/png

Text types get a charset parameter so browsers never have to guess the
encoding of a page.

=============================================================================
"""

from pathlib import Path
from typing import Dict, Optional, Tuple, Union


_BY_TYPE: Dict[str, Tuple[str, ...]] = {
    "text/html": (".html", ".htm"),
    "text/css": (".css",),
    "text/javascript": (".js", ".mjs"),
    "text/plain": (".txt",),
    "application/json": (".json", ".map"),
    "image/png": (".png",),
    "image/jpeg": (".jpg", ".jpeg"),
    "image/gif": (".gif",),
    "image/svg+xml": (".svg",),
    "image/x-icon": (".ico",),
    "image/webp": (".webp",),
    "font/woff": (".woff",),
    "font/woff2": (".woff2",),
    "font/ttf": (".ttf",),
}

MIME_TYPES = {ext: mime for mime, exts in _BY_TYPE.items() for ext in exts}

DEFAULT_MIME_TYPE = "application/octet-stream"

# Non-text/* types whose bodies are still text
_CHARSET_TYPES = frozenset({"application/json", "image/svg+xml"})

PathLike = Union[str, Path]


def get_mime_type(path: PathLike, default: Optional[str] = None) -> str:
    """
    MIME type from the (case-insensitive) extension.

        >>> get_mime_type("img/FAVICON.PNG")
        'image/png'
        >>> get_mime_type("blob.xyz")
        'application/octet-stream'
    """
    return MIME_TYPES.get(Path(path).suffix.lower(), default or DEFAULT_MIME_TYPE)


def get_content_type(path: PathLike, charset: str = "utf-8") -> str:
    """
    Content-Type header value for a file, with a charset for text.

        >>> get_content_type("notFound.html")
        'text/html; charset=utf-8'
    """
    mime = get_mime_type(path)
    if mime.startswith("text/") or mime in _CHARSET_TYPES:
        return f"{mime}; charset={charset}"
    return mime

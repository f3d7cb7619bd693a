"""
=============================================================================
CONTENT TYPE RESOLUTION
=============================================================================

Maps a file extension to the MIME type sent in the Content-Type header.

The table is deliberately fixed and small. There is no content sniffing:
a PNG renamed to .txt is served as text/plain, and anything the table does
not know about is served as opaque binary.

    ┌──────────────┬──────────────────────────────┐
    │  Extension   │  Content-Type                │
    ├──────────────┼──────────────────────────────┤
    │  .html       │  text/html                   │
    │  .css        │  text/css                    │
    │  .js         │  application/javascript      │
    │  .png        │  image/png                   │
    │  .jpg .jpeg  │  image/jpeg                  │
    │  .gif        │  image/gif                   │
    │  .txt        │  text/plain                  │
    │  (other)     │  application/octet-stream    │
    └──────────────┴──────────────────────────────┘

Lookup is case-insensitive: INDEX.HTML and index.html are both text/html.

=============================================================================
"""

from pathlib import Path
from typing import Union


MIME_TYPES = {
    ".html": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".txt": "text/plain",
}

# "I don't know what this is, treat it as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def get_content_type(path: Union[str, Path]) -> str:
    """
    Get the Content-Type for a file based on its extension.

    Args:
        path: File path or bare file name.

    Returns:
        The MIME type string.

    Examples:
        >>> get_content_type("StaticFiles/index.html")
        'text/html'

        >>> get_content_type("LOGO.PNG")
        'image/png'

        >>> get_content_type("archive.tar.gz")
        'application/octet-stream'
    """
    if isinstance(path, str):
        path = Path(path)

    return MIME_TYPES.get(path.suffix.lower(), DEFAULT_MIME_TYPE)

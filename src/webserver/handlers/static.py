"""
=============================================================================
STATIC FILE RESOLUTION
=============================================================================

Maps a request path to a file under the document root.

=============================================================================
PATH MAPPING
=============================================================================

    Request path          File
    ───────────────────   ──────────────────────────────
    /                     <root>/index.html
    /index.html           <root>/index.html
    /css/site.css         <root>/css/site.css
    css/site.css          <root>/css/site.css   (no leading "/" is fine)
    /docs/                <root>/docs           → directory → NotFound

There is no directory listing and no index.html fallback for anything
but the root. The path is used verbatim: "%20" is three characters, not
a space.

=============================================================================
PATH TRAVERSAL
=============================================================================

The classic attack:

    GET /../../etc/passwd

    root / "../../etc/passwd"  ──resolve()──►  /etc/passwd

The joined path is resolve()d (collapsing ".." and following symlinks)
and must still be inside the resolved document root, otherwise the
answer is NotFound, exactly as if the file did not exist. The attempt is
logged as a warning.

=============================================================================
RESULTS, NOT EXCEPTIONS
=============================================================================

resolve() returns either a StaticFile or NotFound. Only genuinely
unexpected faults (permission denied, I/O error while reading) raise;
the connection handler turns those into a 500.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from ..http.mime_types import get_content_type


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticFile:
    """A file found under the document root, with its bytes."""
    path: Path
    content: bytes

    @property
    def content_type(self) -> str:
        return get_content_type(self.path)


@dataclass(frozen=True)
class NotFound:
    """No servable file for this path."""
    path: str
    reason: str = "not found"


class StaticFileResolver:
    """
    Resolves request paths against a document root.

    Usage:
        resolver = StaticFileResolver("./StaticFiles")

        result = resolver.resolve(request.path)
        if isinstance(result, StaticFile):
            send(200, result.content_type, result.content)
        else:
            send_404()
    """

    INDEX_FILE = "index.html"

    def __init__(self, document_root: Union[str, Path]):
        """
        Args:
            document_root: Directory to serve from. Resolved to an
                           absolute path once, here.
        """
        self.document_root = Path(document_root).resolve()

    def resolve(self, path: str) -> Union[StaticFile, NotFound]:
        """
        Find and read the file for a request path.

        Returns:
            StaticFile with the file's content, or NotFound.

        Raises:
            OSError: The file exists but could not be read.
        """
        # ─────────────────────────────────────────────────────────────────
        # MAP URL PATH TO RELATIVE FILE PATH
        # ─────────────────────────────────────────────────────────────────
        if path == "/":
            path = "/" + self.INDEX_FILE

        relative = path[1:] if path.startswith("/") else path

        # ─────────────────────────────────────────────────────────────────
        # RESOLVE AND CONTAIN
        # ─────────────────────────────────────────────────────────────────
        try:
            full_path = (self.document_root / relative).resolve()
        except (OSError, ValueError, RuntimeError) as e:
            # Embedded NUL bytes, symlink loops
            logger.debug(f"Cannot resolve {path!r}: {e}")
            return NotFound(path, "unresolvable")

        if not self.is_within_root(full_path):
            logger.warning(f"Path traversal attempt: {path}")
            return NotFound(path, "outside document root")

        if not full_path.is_file():
            return NotFound(path)

        # ─────────────────────────────────────────────────────────────────
        # READ
        # ─────────────────────────────────────────────────────────────────
        # Read errors propagate: an existing file we cannot read is a
        # server fault, not a 404
        content = full_path.read_bytes()

        logger.debug(f"Resolved {path} -> {full_path} ({len(content)} bytes)")
        return StaticFile(full_path, content)

    def is_within_root(self, full_path: Path) -> bool:
        """True if a resolved path is the document root or below it."""
        try:
            full_path.relative_to(self.document_root)
        except ValueError:
            return False
        return True

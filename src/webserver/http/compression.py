"""
=============================================================================
RESPONSE COMPRESSION
=============================================================================

Compresses response bodies with gzip when the client says it can take it.

gzip is the only codec. It wraps DEFLATE (LZ77 + Huffman coding), which
shrinks text-based content by 70-90% and does nothing useful for images
that are already compressed.

=============================================================================
WHEN DO WE COMPRESS?
=============================================================================

ALL of these must hold:

    1. The body is LARGER than min_size (1024 bytes).
       A body of exactly 1024 bytes is sent as-is.

    2. The client sent an Accept-Encoding header with a non-empty value.

    3. The content type looks textual: it contains "text" or
       "javascript" (text/html, text/css, application/javascript...).

    4. The Accept-Encoding value contains "gzip" anywhere, compared
       case-insensitively. There is no q-value negotiation:

           Accept-Encoding: gzip, deflate, br   → compress
           Accept-Encoding: GZIP                → compress
           Accept-Encoding: gzip;q=0            → compress (not parsed!)
           Accept-Encoding: br                  → don't

When we compress, the body is replaced by the gzip stream and the
response carries "Content-Encoding: gzip". Content-Length is computed
later from whatever body ends up on the wire.

=============================================================================
DETERMINISTIC OUTPUT
=============================================================================

A gzip header normally embeds the current time, so compressing the same
bytes twice gives different output. We pin mtime=0 so the same file
always produces the same response bytes.

=============================================================================
"""

import gzip
from typing import Optional


class Compressor:
    """
    gzip codec plus the policy that decides when to use it.

    Usage:
        compressor = Compressor()

        if compressor.should_compress(body, "text/html", accept_encoding):
            body = compressor.compress(body)
            encoding = compressor.token
    """

    # Value used both to match Accept-Encoding and as Content-Encoding
    token = "gzip"

    # Substrings that mark a content type as worth compressing
    COMPRESSIBLE_MARKERS = ("text", "javascript")

    def __init__(self, min_size: int = 1024, level: int = 6):
        """
        Args:
            min_size: Bodies must be strictly larger than this to be
                      compressed.
            level: gzip compression level, 1 (fast) to 9 (small).
        """
        self.min_size = min_size
        self.level = level

    def should_compress(
        self,
        body: bytes,
        content_type: str,
        accept_encoding: Optional[str],
    ) -> bool:
        """Apply the four-part policy described in the module docstring."""
        if len(body) <= self.min_size:
            return False

        if not accept_encoding:
            return False

        if not any(marker in content_type for marker in self.COMPRESSIBLE_MARKERS):
            return False

        return self.token in accept_encoding.lower()

    def compress(self, body: bytes) -> bytes:
        return gzip.compress(body, compresslevel=self.level, mtime=0)

    def decompress(self, data: bytes) -> bytes:
        return gzip.decompress(data)

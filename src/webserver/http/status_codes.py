"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The small set of status codes this server can put on a status line.

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  200   │ OK                    - file served / POST acknowledged   │
    │  404   │ Not Found             - no such file under the doc root   │
    │  405   │ Method Not Allowed    - anything other than GET or POST   │
    │  500   │ Internal Server Error - unexpected fault while routing    │
    └────────┴───────────────────────────────────────────────────────────┘

The enum is an IntEnum so a status compares equal to its number, which is
what the access log records:

    >>> HTTPStatus.NOT_FOUND == 404
    True
    >>> HTTPStatus.NOT_FOUND.phrase
    'Not Found'

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """HTTP status codes with their reason phrases."""

    OK = 200
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """
        Reason phrase shown after the code on the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_success(self) -> bool:
        return 200 <= self < 300

    @property
    def is_error(self) -> bool:
        """True for 4xx and 5xx codes."""
        return self >= 400


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}

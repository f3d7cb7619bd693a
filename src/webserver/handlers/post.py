"""
POST handling.

A POST is accepted from any path. Its body is written to the console
through the "webserver.post" logger and the client gets a fixed
plain-text acknowledgement. Nothing is stored.
"""

import logging

from ..http.request import HTTPRequest
from ..http.response import POST_ACCEPTED_TEXT


# Named logger so the console sink can be routed or silenced on its own:
#   logging.getLogger("webserver.post").setLevel(logging.WARNING)
logger = logging.getLogger("webserver.post")


class PostHandler:
    """Logs POST bodies and returns the acknowledgement text."""

    def __init__(self, sink: logging.Logger = logger):
        self.sink = sink

    def handle(self, request: HTTPRequest) -> str:
        """
        Record the request body.

        The body is decoded as UTF-8 for display; undecodable bytes are
        replaced rather than rejected.

        Returns:
            The response body to send ("Datos recibidos y logueados").
        """
        text = request.body.decode("utf-8", errors="replace")

        if request.body_truncated:
            self.sink.warning(
                f"POST {request.raw_target} body truncated: "
                f"got {len(request.body)} of {request.content_length} bytes"
            )

        self.sink.info(f"POST data received on {request.raw_target}: {text}")
        return POST_ACCEPTED_TEXT

"""
=============================================================================
WEBSERVER - Minimal Concurrent Static-File HTTP/1.1 Server
=============================================================================

Serves files from a document root, accepts POST bodies for logging, and
writes a daily access log. Built directly on sockets and threads.

=============================================================================
PACKAGE LAYOUT
=============================================================================

    webserver/
    ├── __main__.py        CLI and bootstrap (python -m webserver)
    ├── config.py          ServerConfig: defaults, JSON file, env, CLI
    ├── server.py          HTTPServer: lifecycle and dispatch
    ├── handler.py         ConnectionHandler: parse → route → respond → log
    ├── access_log.py      Daily access_YYYY-MM-DD.log files
    ├── core/
    │   ├── socket_server.py   Listener
    │   ├── connection.py      Client socket wrapper
    │   └── thread_pool.py     Elastic worker pool
    ├── http/
    │   ├── request.py         RequestParser
    │   ├── response.py        ResponseWriter
    │   ├── compression.py     gzip
    │   ├── mime_types.py      Content types
    │   └── status_codes.py    HTTPStatus
    └── handlers/
        ├── static.py          StaticFileResolver
        └── post.py            PostHandler

=============================================================================
QUICK START
=============================================================================

    $ python -m webserver --port 8080 --document-root ./StaticFiles

    $ curl -i http://localhost:8080/
    $ curl -i -d 'hello' http://localhost:8080/anything

=============================================================================
"""

__version__ = "1.0.0"

from .config import ConfigError, ServerConfig
from .server import HTTPServer

__all__ = ["HTTPServer", "ServerConfig", "ConfigError", "__version__"]

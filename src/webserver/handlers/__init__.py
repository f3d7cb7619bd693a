"""
=============================================================================
HANDLERS MODULE
=============================================================================

The two things a request can be routed to:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ Method   │ Handler               │ Outcome                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ GET      │ StaticFileResolver    │ StaticFile → 200, NotFound → 404 │
    │ POST     │ PostHandler           │ body logged → 200                │
    │ other    │ (none)                │ 405                              │
    └─────────────────────────────────────────────────────────────────────┘

Handlers return values; the connection handler turns them into responses.

=============================================================================
"""

from .post import PostHandler
from .static import NotFound, StaticFile, StaticFileResolver

__all__ = [
    "StaticFileResolver",
    "StaticFile",
    "NotFound",
    "PostHandler",
]

"""Middleware — Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> AnyResponse

Built-in middleware:
    StaticAssets -- Serve a static root and allow-listed root files from disk
"""

from perch.middleware.protocol import AnyResponse, Middleware, Next
from perch.middleware.static import (
    DEFAULT_ASSETS,
    StaticAssets,
    StaticConfig,
    static_assets,
    wildcard_assets,
)

__all__ = [
    "DEFAULT_ASSETS",
    "AnyResponse",
    "Middleware",
    "Next",
    "StaticAssets",
    "StaticConfig",
    "static_assets",
    "wildcard_assets",
]

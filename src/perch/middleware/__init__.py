"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware:
    CORSMiddleware -- Cross-Origin Resource Sharing with wildcard origins
    Timer -- Logs duration, method and path of every request
    recover -- Turns uncaught handler exceptions into plain 500 responses
"""

from perch.middleware.cors import CORSConfig, CORSMiddleware
from perch.middleware.protocol import Middleware, Next, compose
from perch.middleware.recover import recover
from perch.middleware.timer import Timer

__all__ = [
    "CORSConfig",
    "CORSMiddleware",
    "Middleware",
    "Next",
    "Timer",
    "compose",
    "recover",
]

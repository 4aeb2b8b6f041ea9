"""Timer middleware: one log line per request with its duration."""

import logging
import time

from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next

logger = logging.getLogger("perch.middleware")


class Timer:
    """Logs ``duration method path`` after every request it wraps.

    Usage::

        router.use(Timer())
    """

    __slots__ = ("level",)

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level

    async def __call__(self, request: Request, next: Next) -> Response:
        start = time.perf_counter()
        try:
            return await next(request)
        finally:
            elapsed = time.perf_counter() - start
            logger.log(self.level, "%-10s %-7s %s", f"{elapsed * 1000:.3f}ms", request.method, request.path)

"""Recover middleware: turns handler crashes into plain 500 responses."""

import logging

from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next

logger = logging.getLogger("perch.middleware")


async def recover(request: Request, next: Next) -> Response:
    """Catch anything the wrapped chain raises and answer 500.

    ``HTTPError`` passes through untouched; the multiplexer renders it.
    Place this inside middleware that should still see the response.
    """
    try:
        return await next(request)
    except HTTPError:
        raise
    except Exception:
        logger.exception("recovered from error in %s %s", request.method, request.path)
        return Response(body="Internal Server Error\n", status=500).with_header(
            "X-Content-Type-Options", "nosniff"
        )

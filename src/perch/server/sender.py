"""Response sending: writes perch Response values through a ResponseWriter.

Headers are applied to the writer before the status line is flushed, so
any decorator in the writer chain sees the final header set when
``write_header`` reaches it.
"""

from perch.http.response import Response
from perch.http.writer import ResponseWriter


def body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def write_response(response: Response, writer: ResponseWriter, *, head: bool = False) -> None:
    """Apply *response* to *writer*: headers, status line, then body.

    A header name the response sets replaces values an outer layer left on
    the writer; repeated names inside the response are all kept.
    """
    headers = writer.headers
    headers.set("content-type", response.content_type)

    applied: set[str] = set()
    for name, value in response.headers:
        key = name.lower()
        if key in applied:
            headers.add(key, value)
        else:
            headers.set(key, value)
            applied.add(key)

    body = response.body_bytes if body_allowed(response.status) else b""
    headers.set("content-length", str(len(body)))

    await writer.write_header(response.status)
    if body and not head:
        await writer.write(body)

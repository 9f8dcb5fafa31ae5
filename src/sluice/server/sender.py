"""ASGI response sending: translates sluice Responses to ASGI messages."""

from sluice._internal.asgi import Send
from sluice.http.response import Response

# Recomputed for the (possibly decoded) body we actually send
_SKIP_HEADERS = frozenset({"content-type", "content-length", "transfer-encoding"})


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # RFC: 1xx, 204, and 304 responses do not include a message body.
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Translate a sluice Response into ASGI send() calls.

    For ``HEAD`` requests the headers (including the real content
    length) are sent without the body.
    """
    raw_headers: list[tuple[bytes, bytes]] = [
        (b"content-type", response.content_type.encode("latin-1")),
    ]
    for name, value in response.headers:
        if name.lower() in _SKIP_HEADERS:
            continue
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))

    body = response.body_bytes if _body_allowed(response.status) else b""

    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": b"" if head else body,
        }
    )

"""
Raw HTTP helpers shared by the tests.
"""

import asyncio
import json
from typing import Optional, Union


def build_request(
    method: str = "GET",
    path: str = "/",
    body: Union[str, bytes] = b"",
    version: str = "HTTP/1.1",
    headers: Optional[dict] = None,
) -> bytes:
    """Assemble raw request bytes with a correct Content-Length."""
    if isinstance(body, str):
        body = body.encode("utf-8")
    lines = [f"{method} {path} {version}", "Host: localhost:8080"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if body:
        lines.append(f"Content-Length: {len(body)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1") + body


def post_url(url: str, **kwargs) -> bytes:
    """Raw POST request whose body is `url` as a JSON string literal."""
    return build_request("POST", body=json.dumps(url), **kwargs)


def split_response(raw: bytes) -> tuple[int, dict, bytes]:
    """Split raw response bytes into (status code, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


async def exchange(port: int, data: bytes, host: str = "127.0.0.1") -> bytes:
    """Send `data` on a fresh connection and read until the server closes."""
    reader, writer = await asyncio.open_connection(host, port)
    try:
        writer.write(data)
        await writer.drain()
        return await asyncio.wait_for(reader.read(), timeout=5.0)
    finally:
        writer.close()
        await writer.wait_closed()



def chunked_post(chunks: list[bytes], trailers: str = "", version: str = "HTTP/1.1") -> bytes:
    """Raw POST request with Transfer-Encoding: chunked and the given chunks."""
    head = (
        f"POST / {version}\r\n"
        "Host: localhost:8080\r\n"
        "Transfer-Encoding: chunked\r\n"
        "\r\n"
    ).encode("latin-1")
    body = b"".join(b"%x\r\n%s\r\n" % (len(chunk), chunk) for chunk in chunks)
    return head + body + b"0\r\n" + trailers.encode("latin-1") + b"\r\n"

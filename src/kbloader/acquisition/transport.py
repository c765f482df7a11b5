"""HTTP helpers shared by the direct fetch path and the site adaptors."""

from __future__ import annotations

import time
from typing import Callable

from charset_normalizer import from_bytes
import httpx

from kbloader.acquisition.models import FetchError

PAGE_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,"
    "application/json;q=0.8,text/plain;q=0.7,*/*;q=0.5"
)
# Already undone by iter_bytes; the rebuilt response must not decode again.
_DECODED_HEADERS = frozenset({"content-encoding", "content-length", "transfer-encoding"})


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def describe_status(status_code: int, reason: str = "") -> str:
    if status_code == 429:
        return "HTTP error: 429 (rate limited, retry later)"
    detail = f" {reason}" if reason else ""
    return f"HTTP error: {status_code}{detail}"


def page_headers(user_agent: str) -> dict[str, str]:
    return {
        "User-Agent": user_agent,
        "Accept": PAGE_ACCEPT,
        "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
        "Accept-Encoding": "identity",
        "Cache-Control": "no-cache",
    }


def send(
    client: httpx.Client,
    method: str,
    url: str,
    *,
    headers: dict[str, str],
    timeout: float,
    stage: str,
    clock: Callable[[], float] = time.monotonic,
) -> httpx.Response:
    """Issue one request and translate transport failures into ``FetchError``.

    httpx applies ``timeout`` to each connect, read and write phase on its
    own, so the body is streamed against an overall deadline of ``timeout``
    seconds for the whole attempt.
    """

    deadline = clock() + timeout
    try:
        request = client.build_request(method, url, headers=headers, timeout=timeout)
        response = client.send(request, stream=True, follow_redirects=True)
        try:
            body = bytearray()
            for chunk in response.iter_bytes():
                body.extend(chunk)
                if clock() > deadline:
                    raise FetchError(stage=stage, message=f"request timed out after {timeout:g}s", retryable=True)
        finally:
            response.close()
    except httpx.TimeoutException as exc:
        raise FetchError(stage=stage, message=f"request timed out after {timeout:g}s", retryable=True) from exc
    except httpx.InvalidURL as exc:
        raise FetchError(stage=stage, message=f"invalid URL: {exc}") from exc
    except httpx.RequestError as exc:
        raise FetchError(stage=stage, message=f"network connection failed: {exc}", retryable=True) from exc

    return httpx.Response(
        response.status_code,
        headers=[(name, value) for name, value in response.headers.multi_items() if name.lower() not in _DECODED_HEADERS],
        content=bytes(body),
        request=response.request,
        extensions=response.extensions,
        history=response.history,
    )


def ensure_success(response: httpx.Response, *, stage: str) -> httpx.Response:
    if response.is_success:
        return response
    status = response.status_code
    raise FetchError(
        stage=stage,
        message=describe_status(status, response.reason_phrase),
        status_code=status,
        retryable=is_retryable_status(status),
    )


def decode_body(response: httpx.Response) -> str:
    """Decode a body using the declared charset, sniffing when none is declared."""

    raw = response.content
    declared = response.charset_encoding
    if declared:
        try:
            return raw.decode(declared, errors="replace")
        except LookupError:
            pass

    best = from_bytes(raw).best()
    if best is not None:
        return str(best)
    return raw.decode("utf-8", errors="replace")

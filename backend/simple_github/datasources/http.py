from typing import Any, Dict, Optional

import httpx
from loguru import logger

USER_AGENT = "simple-github"


def _display(url: httpx.URL) -> str:
    # query strings may carry search terms, keep them out of the log
    return f"{url.scheme}://{url.host}{url.path}"


async def _log_request(request: httpx.Request) -> None:
    logger.debug(f"--> {request.method} {_display(request.url)}")


async def _log_response(response: httpx.Response) -> None:
    request = response.request
    logger.debug(
        f"<-- {response.status_code} {request.method} {_display(request.url)}"
    )


def client_kwargs(
    base_url: str,
    proxy: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Keyword arguments shared by every ``httpx.AsyncClient`` we build."""
    kwargs: Dict[str, Any] = {
        "base_url": base_url,
        "event_hooks": {"request": [_log_request], "response": [_log_response]},
    }
    if transport is not None:
        kwargs["transport"] = transport
    elif proxy:
        # http(s):// and socks5:// proxies are both accepted by httpx
        kwargs["proxy"] = proxy
    return kwargs

"""Ordered method + path dispatcher.

Routes are tried in registration order. A route handles the request when its
method equals the request method and its pattern matches the *whole* path;
named groups in the pattern are handed to the handler as keyword arguments.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

from .responses import failure

Handler = Callable[..., Awaitable[Response]]


@dataclass(frozen=True)
class Route:
    method: str
    pattern: re.Pattern[str]
    handler: Handler


class Router:
    def __init__(self) -> None:
        self._routes: list[Route] = []

    @property
    def routes(self) -> tuple[Route, ...]:
        return tuple(self._routes)

    def handle(self, method: str, pattern: str, handler: Handler) -> None:
        compiled = re.compile(f"^{pattern}$")
        self._routes.append(Route(method=method.upper(), pattern=compiled, handler=handler))

    def match(self, method: str, path: str) -> tuple[Route, dict[str, Any]] | None:
        method = method.upper()
        for route in self._routes:
            if route.method != method:
                continue
            found = route.pattern.fullmatch(path)
            if found:
                return route, found.groupdict()
        return None

    async def dispatch(self, request: Request) -> Response:
        matched = self.match(request.method, request.url.path)
        if matched is None:
            return failure(404, "not found")
        route, params = matched
        return await route.handler(request, **params)

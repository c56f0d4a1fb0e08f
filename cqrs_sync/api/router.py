"""
Request Router

Server-side exclusive dispatch: each incoming request must be accepted by
exactly one named route. Overlapping or missing routes are programming
errors and raise instead of silently picking a winner.

Usage:
    router = Router()
    router.add_route(Route(
        "list_events",
        lambda request, state: request.method == "GET" and request.url.path == "/events",
        list_events,
    ))

    async def endpoint(request):
        return await router.execute(request, app_state)
"""

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Tuple, Union

from starlette.requests import Request

from ..core.dispatch import DispatchTable, Rule
from ..core.errors import InvalidJsonBody

logger = logging.getLogger(__name__)

RouteFilter = Callable[[Request, Any], bool]
RouteLogic = Callable[[Request, Any], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class Route:
    """A named request filter and the logic run when it matches."""
    name: str
    filter: RouteFilter
    logic: RouteLogic

    def __post_init__(self):
        if not self.name:
            raise ValueError("Supply a name")
        if not callable(self.filter):
            raise ValueError("Supply a filter function")
        if not callable(self.logic):
            raise ValueError("Supply a logic function")


def _summary(value: Tuple[Request, Any]) -> str:
    request, _ = value
    return f"[{request.method}] {request.url.path}"


class Router:
    """
    Routes requests through an exclusive dispatch table.

    Raises:
        DuplicateRule: a route with the same name was already added
        NoMatchingRule: no route accepts the request
        AmbiguousRules: more than one route accepts the request
    """

    def __init__(self):
        self._table: DispatchTable[Tuple[Request, Any]] = DispatchTable(describe=_summary)

    @property
    def route_names(self):
        return self._table.rule_names

    def add_route(self, route: Route) -> "Router":
        self._table.register(Rule(
            route.name,
            lambda value: route.filter(value[0], value[1]),
            lambda value: route.logic(value[0], value[1]),
        ))
        return self

    async def execute(self, request: Request, state: Any = None) -> Any:
        """Run the single matching route and return its (awaited) result."""
        logger.debug(f" -> [{request.method}] {request.url.path}")

        result = self._table.dispatch((request, state))
        if inspect.isawaitable(result):
            result = await result
        return result


async def read_json_body(request: Request) -> Any:
    """Parse the request body as JSON."""
    body = await request.body()
    try:
        return json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise InvalidJsonBody(str(e)) from e

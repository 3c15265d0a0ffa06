"""
Route Table objects.

A form routes through an ordered table of entries:
    - RuleRoute: condition tree + destination action
    - RouterReference: delegation to another form's table
terminated by exactly one fallback RuleRoute.

ARCHITECTURAL RULE:
    Tables are immutable snapshots.
    Reordering or repairing a table returns a new table.
"""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from formroute.conditions import ConditionNode, Group, match_all
from formroute.errors import RouteTableError, SelfReferenceError

DEFAULT_FALLBACK_MESSAGE = "Thank you for your interest! We will be in touch soon."


class ActionKind(Enum):
    """What happens once a route is selected."""

    EVENT_REDIRECT = "event_redirect"
    EXTERNAL_REDIRECT = "external_redirect"
    CUSTOM_MESSAGE = "custom_message"


@dataclass(frozen=True)
class Action:
    """
    Destination of a route.

    Properties:
        kind:
            ActionKind enum
        value:
            Event slug or id ("team/general"), URL, or message text
            depending on kind
    """

    kind: ActionKind
    value: str = ""

    @property
    def targets_event(self) -> bool:
        return self.kind is ActionKind.EVENT_REDIRECT


@dataclass(frozen=True)
class RuleRoute:
    """
    A conditional destination.

    Properties:
        id:
            Route id, unique within the table
        action:
            Action taken when this route is selected
        query:
            Condition tree over form fields
        attributes_query:
            Optional condition tree over host attributes, only meaningful for
            event destinations
        is_fallback:
            True for the single unconditional, always-last route
    """

    id: str
    action: Action
    query: ConditionNode = field(default_factory=match_all)
    attributes_query: Optional[ConditionNode] = None
    is_fallback: bool = False

    @property
    def has_rules(self) -> bool:
        return isinstance(self.query, Group) and not self.query.is_empty


@dataclass(frozen=True)
class RouterReference:
    """
    Delegates routing to another form.

    Properties:
        id: The referenced form's id
        name / description: Copied from the referenced form for display
    """

    id: str
    name: str = ""
    description: str = ""

    is_fallback = False


Route = Union[RuleRoute, RouterReference]


def create_fallback_route(message: str = DEFAULT_FALLBACK_MESSAGE) -> RuleRoute:
    """Build a fallback that shows a message and matches everything."""
    return RuleRoute(
        id=str(uuid.uuid4()),
        action=Action(ActionKind.CUSTOM_MESSAGE, message),
        query=match_all(),
        is_fallback=True,
    )


@dataclass(frozen=True)
class RouteTable:
    """
    An ordered, immutable sequence of routes owned by one form.

    Properties:
        form_id:
            Owning form
        routes:
            Entries in evaluation order
        fields:
            The owning form's field catalog, when known. Chained tables
            evaluate against their own catalog.

    INVARIANTS (checked by validate):
        - Exactly one fallback, which is a RuleRoute and is last
        - Route ids are unique
        - No router reference to form_id itself
    """

    form_id: str
    routes: Tuple[Route, ...] = ()
    fields: Optional[Tuple[Any, ...]] = None

    def __post_init__(self):
        if not isinstance(self.routes, tuple):
            object.__setattr__(self, "routes", tuple(self.routes))

    @property
    def fallback(self) -> Optional[RuleRoute]:
        for route in self.routes:
            if isinstance(route, RuleRoute) and route.is_fallback:
                return route
        return None

    @property
    def references(self) -> List[RouterReference]:
        return [r for r in self.routes if isinstance(r, RouterReference)]

    def get_route(self, route_id: str) -> Optional[Route]:
        for route in self.routes:
            if route.id == route_id:
                return route
        return None

    def validate(self) -> None:
        """
        Check the table invariants.

        Raises:
            SelfReferenceError: a router reference points at form_id
            RouteTableError: any other structural violation
        """
        seen = set()
        for route in self.routes:
            if route.id in seen:
                raise RouteTableError(
                    f"Duplicate route id {route.id!r} in form {self.form_id!r}", form_id=self.form_id
                )
            seen.add(route.id)
            if isinstance(route, RouterReference) and route.id == self.form_id:
                raise SelfReferenceError(self.form_id)

        fallbacks = [r for r in self.routes if isinstance(r, RuleRoute) and r.is_fallback]
        if len(fallbacks) != 1:
            raise RouteTableError(
                f"Form {self.form_id!r} must have exactly one fallback route, found {len(fallbacks)}",
                form_id=self.form_id,
            )
        if self.routes[-1] is not fallbacks[0]:
            raise RouteTableError(
                f"Fallback route of form {self.form_id!r} must be last", form_id=self.form_id
            )

    def with_fallback(self, message: str = DEFAULT_FALLBACK_MESSAGE) -> "RouteTable":
        """
        Return a table whose fallback exists and sits last.

        A missing fallback is created as a custom message route. Tables with
        several fallbacks are left for validate() to reject.
        """
        fallback = self.fallback
        if fallback is None:
            return replace(self, routes=self.routes + (create_fallback_route(message),))
        if self.routes[-1] is fallback:
            return self
        others = tuple(r for r in self.routes if r is not fallback)
        return replace(self, routes=others + (fallback,))

    def move_up(self, route_id: str) -> "RouteTable":
        """Swap a route with the one before it. The fallback never moves."""
        index = self._movable_index(route_id)
        if index == 0:
            return self
        return self._swap(index - 1, index)

    def move_down(self, route_id: str) -> "RouteTable":
        """Swap a route with the one after it, stopping above the fallback."""
        index = self._movable_index(route_id)
        following = self.routes[index + 1] if index + 1 < len(self.routes) else None
        if following is None or following.is_fallback:
            return self
        return self._swap(index, index + 1)

    def _movable_index(self, route_id: str) -> int:
        for index, route in enumerate(self.routes):
            if route.id == route_id:
                if route.is_fallback:
                    raise RouteTableError("The fallback route cannot be reordered", form_id=self.form_id)
                return index
        raise RouteTableError(f"Unknown route id {route_id!r}", form_id=self.form_id)

    def _swap(self, a: int, b: int) -> "RouteTable":
        routes = list(self.routes)
        routes[a], routes[b] = routes[b], routes[a]
        return replace(self, routes=tuple(routes))

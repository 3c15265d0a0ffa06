"""
Route selection over a single Route Table.

Routes are evaluated top to bottom and the first matching RuleRoute wins.
The fallback is skipped during the walk and returned unconditionally when
nothing else matched, wherever it happens to be stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple

from formroute.errors import RouteTableError
from formroute.evaluator import EvaluationContext, evaluate
from formroute.routes import RouterReference, RouteTable, RuleRoute

logger = logging.getLogger(__name__)


class MatchKind(Enum):
    RULE = "rule"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class RouteSelection:
    """
    Outcome of routing.

    Properties:
        route:
            The selected RuleRoute
        matched_by:
            RULE when its tree matched, FALLBACK otherwise
        chain:
            Form ids walked to reach the route, starting with the entry form
        fallback_tree_matched:
            For a fallback with rules, whether those rules matched. Only used
            to scope UI; it never influences selection.
    """

    route: RuleRoute
    matched_by: MatchKind
    chain: Tuple[str, ...] = ()
    fallback_tree_matched: Optional[bool] = None

    @property
    def form_id(self) -> Optional[str]:
        return self.chain[-1] if self.chain else None


ReferenceHandler = Callable[[RouterReference], Optional[RouteSelection]]


def context_for(route_table: RouteTable, response: Mapping[str, Any],
                fields: Optional[Iterable[Any]] = None) -> EvaluationContext:
    """Build the evaluation context, preferring the table's own catalog."""
    catalog = route_table.fields if route_table.fields is not None else fields
    if catalog is None:
        raise ValueError(f"No field catalog available for form {route_table.form_id!r}")
    return EvaluationContext.for_response(catalog, response)


def first_match(
    route_table: RouteTable,
    context: EvaluationContext,
    on_reference: Optional[ReferenceHandler] = None,
) -> Optional[RouteSelection]:
    """
    Return the first non-fallback route that matches, or None.

    Router references are skipped unless on_reference is given, in which
    case its non-None result is returned in place of the reference.
    """
    for route in route_table.routes:
        if isinstance(route, RouterReference):
            if on_reference is None:
                continue
            delegated = on_reference(route)
            if delegated is not None:
                return delegated
            continue

        if route.is_fallback:
            continue

        logger.debug("Evaluating route %s of form %s", route.id, route_table.form_id)
        if evaluate(route.query, context):
            return RouteSelection(route=route, matched_by=MatchKind.RULE, chain=(route_table.form_id,))
    return None


def fallback_selection(route_table: RouteTable, context: EvaluationContext) -> RouteSelection:
    fallback = route_table.fallback
    if fallback is None:
        raise RouteTableError(
            f"Form {route_table.form_id!r} has no fallback route", form_id=route_table.form_id
        )
    tree_matched = evaluate(fallback.query, context) if fallback.has_rules else None
    return RouteSelection(
        route=fallback,
        matched_by=MatchKind.FALLBACK,
        chain=(route_table.form_id,),
        fallback_tree_matched=tree_matched,
    )


def select_route(
    route_table: RouteTable,
    response: Mapping[str, Any],
    fields: Optional[Iterable[Any]] = None,
) -> RouteSelection:
    """
    Select the route for a normalized response.

    Args:
        route_table: Table to walk
        response: Normalized Response (field id -> value)
        fields: Field Catalog, used when the table carries none

    Returns:
        RouteSelection for the first matching RuleRoute, or the fallback

    Raises:
        RouteTableError: the table has no fallback
    """
    context = context_for(route_table, response, fields)
    selection = first_match(route_table, context)
    if selection is not None:
        return selection
    return fallback_selection(route_table, context)

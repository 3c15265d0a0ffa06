"""
Router reference resolution and validation.

Forms are nodes; router references are directed edges. Resolution keeps an
explicit visited set per call, so a cycle of any length is reported on the
first form that repeats instead of relying on a depth limit.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from formroute.errors import CyclicRoutingError, FormNotFoundError, SelfReferenceError
from formroute.model import Form
from formroute.router import (
    RouteSelection,
    context_for,
    fallback_selection,
    first_match,
)
from formroute.routes import RouterReference, RouteTable

logger = logging.getLogger(__name__)

RouteTableFetcher = Callable[[str], Optional[RouteTable]]


def resolve_destination(
    form_id: str,
    route_table: RouteTable,
    response: Mapping[str, Any],
    fetch_route_table: RouteTableFetcher,
    depth: int = 0,
    fields: Optional[Iterable[Any]] = None,
) -> RouteSelection:
    """
    Walk a Route Table, following router references, to a terminal RuleRoute.

    A router reference contributes the referenced form's non-fallback routes
    at its position. When none of them match, the walk continues with the
    next entry of the referring table; only the entry form's fallback can be
    selected as a fallback.

    Args:
        form_id: Id of the entry form
        route_table: Its Route Table
        response: Normalized Response, carried unchanged across hops
        fetch_route_table: form id -> RouteTable, or None when missing
        depth: Chain depth of form_id; 0 for the entry form
        fields: Field Catalog for tables that carry none

    Raises:
        CyclicRoutingError: a form was reached twice along one chain
        FormNotFoundError: a referenced form does not exist
    """
    if route_table.form_id != form_id:
        route_table = replace(route_table, form_id=form_id)
    path = [form_id]
    selection = _resolve(route_table, response, fetch_route_table, path, {form_id}, depth, fields)
    if selection is not None:
        return selection
    fallback = fallback_selection(route_table, context_for(route_table, response, fields))
    return replace(fallback, chain=(form_id,))


def _resolve(
    route_table: RouteTable,
    response: Mapping[str, Any],
    fetch: RouteTableFetcher,
    path: List[str],
    visited: Set[str],
    depth: int,
    fields: Optional[Iterable[Any]],
) -> Optional[RouteSelection]:
    context = context_for(route_table, response, fields)

    def follow(reference: RouterReference) -> Optional[RouteSelection]:
        if reference.id in visited:
            raise CyclicRoutingError(path + [reference.id])
        referenced = fetch(reference.id)
        if referenced is None:
            raise FormNotFoundError(reference.id)
        logger.debug("Following router reference %s at depth %d", reference.id, depth + 1)
        sub_fields = referenced.fields if referenced.fields is not None else fields
        selection = _resolve(
            referenced,
            response,
            fetch,
            path + [reference.id],
            visited | {reference.id},
            depth + 1,
            sub_fields,
        )
        if selection is None:
            return None
        return replace(selection, chain=(route_table.form_id,) + selection.chain)

    return first_match(route_table, context, on_reference=follow)


# =========================================================================
# Authoring-time validation
# =========================================================================


def validate_router_references(route_table: RouteTable, fetch_route_table: RouteTableFetcher) -> None:
    """
    Reject self references, dangling references and cycles.

    Intended for the moment a table is saved, before any evaluation.

    Raises:
        SelfReferenceError: route_table references its own form
        FormNotFoundError: a reference (direct or transitive) is missing
        CyclicRoutingError: following references returns to an earlier form
    """
    for reference in route_table.references:
        if reference.id == route_table.form_id:
            raise SelfReferenceError(route_table.form_id)
    _walk_references(route_table, fetch_route_table, [route_table.form_id])


def _walk_references(route_table: RouteTable, fetch: RouteTableFetcher, path: List[str]) -> None:
    for reference in route_table.references:
        if reference.id in path:
            raise CyclicRoutingError(path + [reference.id])
        referenced = fetch(reference.id)
        if referenced is None:
            raise FormNotFoundError(reference.id)
        _walk_references(referenced, fetch, path + [reference.id])


def connected_forms(form_id: str, all_forms: Sequence[Form]) -> List[Form]:
    """Forms whose tables contain a router reference to form_id."""
    return [
        form for form in all_forms
        if any(isinstance(r, RouterReference) and r.id == form_id for r in form.routes)
    ]


def _referrers(form_id: str, all_forms: Sequence[Form]) -> Set[str]:
    """Ids of every form that reaches form_id through references."""
    incoming: Dict[str, Set[str]] = {}
    for form in all_forms:
        for route in form.routes:
            if isinstance(route, RouterReference):
                incoming.setdefault(route.id, set()).add(form.id)

    found: Set[str] = set()
    stack = [form_id]
    while stack:
        node = stack.pop()
        for source in incoming.get(node, ()):
            if source not in found:
                found.add(source)
                stack.append(source)
    return found


def _same_owner(a: Form, b: Form) -> bool:
    if a.team_id is not None or b.team_id is not None:
        return a.team_id == b.team_id
    return a.user_id == b.user_id


def available_routers(form: Form, all_forms: Sequence[Form]) -> List[RouterReference]:
    """
    Forms that may be added to form's table as router references.

    Excluded: the form itself, forms of another owner, forms already
    referenced by the table, and forms that already reach this form
    (adding them would close a cycle).
    """
    already_used = {route.id for route in form.routes}
    referrers = _referrers(form.id, all_forms)
    return [
        RouterReference(id=candidate.id, name=candidate.name, description=candidate.description)
        for candidate in all_forms
        if candidate.id != form.id
        and _same_owner(candidate, form)
        and candidate.id not in already_used
        and candidate.id not in referrers
    ]

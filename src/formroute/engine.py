"""
Top-level routing of one submission.

    raw response --normalize--> Normalized Response
                 --resolve----> RouteSelection
                 --filter-----> matched host ids (team events only)
                 --forward----> parameter multi-map

The result is a RoutingDecision for the booking/redirect collaborator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from formroute.chain import RouteTableFetcher, resolve_destination
from formroute.config import EngineConfig
from formroute.errors import FormNotFoundError, NoEligibleHostError, RoutingError
from formroute.forwarding import build_forward_parameters
from formroute.hosts import filter_hosts
from formroute.model import Attribute, Form, Host
from formroute.response import normalize_response
from formroute.router import MatchKind, select_route
from formroute.routes import Action

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutingDecision:
    """
    Properties:
        action: Destination to act on
        route_id: Id of the selected route
        matched_by: MatchKind of the selection
        chain: Form ids walked, entry form first
        matched_host_ids: Hosts left by attribute routing, None when not applied
        forward_params: Parameters for the next stage
    """

    action: Action
    route_id: str
    matched_by: MatchKind
    chain: Tuple[str, ...] = ()
    matched_host_ids: Optional[FrozenSet[Any]] = None
    forward_params: Mapping[str, List[str]] = field(default_factory=dict)

    @property
    def has_eligible_hosts(self) -> bool:
        return self.matched_host_ids is None or bool(self.matched_host_ids)


def route_submission(
    form: Form,
    raw_response,
    fetch_route_table: Optional[RouteTableFetcher] = None,
    hosts: Optional[Sequence[Host]] = None,
    attributes: Optional[Iterable[Attribute]] = None,
    url_params=None,
    config: Optional[EngineConfig] = None,
) -> RoutingDecision:
    """
    Route a submission of form.

    A form without a fallback gets a custom message fallback carrying
    config.fallback_message.

    Args:
        form: The submitted form
        raw_response: ResponseEntry objects or a mapping field id -> value
        fetch_route_table: Loader for referenced forms, required when the
            form contains router references
        hosts: Team roster when the destination may be a pooled team event;
            None disables attribute routing
        attributes: Attribute Catalog of the team, derived from the roster
            when omitted
        url_params: Query parameters of the incoming request
        config: EngineConfig, defaults when omitted

    Raises:
        CyclicRoutingError, FormNotFoundError, RouteTableError: broken configuration
        NoEligibleHostError: attribute routing matched nobody
    """
    config = config or EngineConfig()
    response = normalize_response(form.fields, raw_response)
    table = form.route_table
    if table.fallback is None:
        logger.warning("Form %s has no fallback route, adding one", form.id)
        table = table.with_fallback(config.fallback_message)

    try:
        if fetch_route_table is not None:
            selection = resolve_destination(
                form.id, table, response, fetch_route_table, fields=form.fields
            )
        elif table.references:
            # Without a loader no reference can be resolved
            raise FormNotFoundError(table.references[0].id)
        else:
            selection = select_route(table, response)
    except RoutingError as exc:
        logger.warning("Routing form %s failed: %s", form.id, exc)
        raise

    route = selection.route
    logger.info(
        "Form %s routed to %s (%s) via %s",
        form.id, route.id, selection.matched_by.value, " -> ".join(selection.chain),
    )

    matched_host_ids = None
    if hosts is not None and route.action.targets_event:
        matched_host_ids = filter_hosts(route.attributes_query, hosts, attributes)

    forward_params = build_forward_parameters(
        response,
        form.fields,
        url_params=url_params,
        matched_host_ids=matched_host_ids,
        routed_hosts_param=config.routed_hosts_param,
        routing_control_params=config.routing_control_params,
    )

    decision = RoutingDecision(
        action=route.action,
        route_id=route.id,
        matched_by=selection.matched_by,
        chain=selection.chain,
        matched_host_ids=matched_host_ids,
        forward_params=forward_params,
    )

    if not decision.has_eligible_hosts and config.require_eligible_host:
        logger.warning("No eligible host for route %s of form %s", route.id, form.id)
        raise NoEligibleHostError(decision)
    return decision

"""
Attribute-based host filtering for team events.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

from formroute.conditions import ConditionNode
from formroute.evaluator import EvaluationContext, evaluate
from formroute.model import Attribute, Host

logger = logging.getLogger(__name__)


def roster_attributes(hosts: Iterable[Host]) -> List[Attribute]:
    """Text attributes for every attribute id set on at least one host."""
    seen: Dict[str, Attribute] = {}
    for host in hosts:
        for attribute_id in host.attribute_values:
            seen.setdefault(attribute_id, Attribute(id=attribute_id, name=attribute_id))
    return list(seen.values())


def filter_hosts(
    attributes_query: Optional[ConditionNode],
    hosts: Sequence[Host],
    attributes: Optional[Iterable[Attribute]] = None,
) -> FrozenSet[Any]:
    """
    Return the ids of the hosts whose attributes satisfy the query.

    An absent query, or an empty AND group, keeps every host. The result may
    be empty; deciding what that means is left to the caller.

    Args:
        attributes_query: Condition tree over attribute ids
        hosts: Candidate roster
        attributes: Attribute Catalog of the team. When omitted the catalog
            is derived from the attribute ids the roster carries, so only
            attributes no host has are skipped as removed.
    """
    catalog = list(attributes) if attributes is not None else roster_attributes(hosts)
    matched = frozenset(
        host.id for host in hosts
        if evaluate(attributes_query, EvaluationContext.for_host(catalog, host))
    )
    logger.debug("%d of %d hosts matched attribute rules", len(matched), len(hosts))
    return matched

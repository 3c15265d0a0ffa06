"""
Form Analyzer: authoring diagnostics for routing forms.

This module provides lightweight analysis of Form objects:
    - Route inventory
    - Dangling field references (stale rules)
    - Routes shadowed by an earlier match-all route
    - Condition complexity metrics
    - Fallback placement
    - Cycles in the router-reference graph

IMPORTANT: This does NOT modify the form.
It only produces read-only reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from formroute.conditions import Combinator, Group, iter_rules, tree_depth
from formroute.model import Form
from formroute.routes import RouterReference, RuleRoute


def _matches_everything(route: RuleRoute) -> bool:
    query = route.query
    return isinstance(query, Group) and query.combinator is Combinator.AND and query.is_empty


def _find_cycles_dfs(graph: Dict[str, List[str]], start: str, visited: Set[str],
                     rec_stack: Set[str], path: List[str]) -> Optional[List[str]]:
    """DFS to find a cycle starting from a node."""
    visited.add(start)
    rec_stack.add(start)
    path.append(start)

    for neighbor in graph.get(start, []):
        if neighbor not in visited:
            cycle = _find_cycles_dfs(graph, neighbor, visited, rec_stack, path[:])
            if cycle:
                return cycle
        elif neighbor in rec_stack:
            cycle_start_idx = path.index(neighbor)
            return path[cycle_start_idx:] + [neighbor]

    rec_stack.remove(start)
    return None


def find_reference_cycle(forms: Sequence[Form]) -> Optional[List[str]]:
    """Return one cycle of router references as a list of form ids, or None."""
    graph: Dict[str, List[str]] = {
        form.id: [r.id for r in form.routes if isinstance(r, RouterReference)]
        for form in forms
    }
    visited: Set[str] = set()
    for form_id in graph:
        if form_id not in visited:
            cycle = _find_cycles_dfs(graph, form_id, visited, set(), [])
            if cycle:
                return cycle
    return None


@dataclass
class FormReport:
    """Diagnostics report for one form."""

    form_id: str
    total_routes: int = 0
    rule_routes: int = 0
    router_references: int = 0
    total_rules: int = 0
    max_condition_depth: int = 0

    dangling_fields: Set[str] = field(default_factory=set)
    unreachable_routes: List[str] = field(default_factory=list)
    duplicate_route_ids: Set[str] = field(default_factory=set)

    has_fallback: bool = False
    fallback_is_last: bool = False
    fallback_count: int = 0
    self_referencing: bool = False

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)


def analyze_form(form: Form) -> FormReport:
    """
    Analyze a Form's Route Table.

    Checks for:
    - Rules on fields missing from the catalog
    - Routes that can never be selected
    - Fallback presence and placement
    - Self references and duplicate ids

    Returns a FormReport with metrics and warnings.
    """
    report = FormReport(form_id=form.id)
    field_ids = {f.id for f in form.fields}
    routes = list(form.routes)

    report.total_routes = len(routes)
    seen: Set[str] = set()
    shadowed_by: Optional[str] = None

    for route in routes:
        if route.id in seen:
            report.duplicate_route_ids.add(route.id)
        seen.add(route.id)

        if isinstance(route, RouterReference):
            report.router_references += 1
            if route.id == form.id:
                report.self_referencing = True
            if shadowed_by is not None:
                report.unreachable_routes.append(route.id)
            continue

        report.rule_routes += 1
        for tree in (route.query, route.attributes_query):
            report.max_condition_depth = max(report.max_condition_depth, tree_depth(tree))
        for rule in iter_rules(route.query):
            report.total_rules += 1
            if rule.field_id not in field_ids:
                report.dangling_fields.add(rule.field_id)

        if route.is_fallback:
            report.fallback_count += 1
            continue
        if shadowed_by is not None:
            report.unreachable_routes.append(route.id)
        elif _matches_everything(route):
            shadowed_by = route.id

    fallbacks = [r for r in routes if isinstance(r, RuleRoute) and r.is_fallback]
    report.has_fallback = bool(fallbacks)
    report.fallback_is_last = bool(fallbacks) and routes[-1] is fallbacks[-1]

    # =========================================================================
    # WARNING FLAGS
    # =========================================================================

    if not report.has_fallback:
        report.add_warning("Missing fallback route")
    elif report.fallback_count > 1:
        report.add_warning(f"Multiple fallback routes: {report.fallback_count}")
    elif not report.fallback_is_last:
        report.add_warning("Fallback route is not last")

    if report.dangling_fields:
        report.add_warning(
            f"Rules reference unknown fields: {', '.join(sorted(report.dangling_fields))}"
        )

    if report.unreachable_routes:
        report.add_warning(
            f"Routes after match-all route {shadowed_by} are unreachable: "
            f"{', '.join(report.unreachable_routes)}"
        )

    if report.duplicate_route_ids:
        report.add_warning(
            f"Duplicate route ids: {', '.join(sorted(report.duplicate_route_ids))}"
        )

    if report.self_referencing:
        report.add_warning("Form routes through itself")

    if report.max_condition_depth > 5:
        report.add_warning(
            f"High condition complexity: max depth {report.max_condition_depth}"
        )

    return report

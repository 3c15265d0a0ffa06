"""
Command line entry point.

    formroute route FORM RESPONSE [--forms FILE] [--hosts FILE] [--param k=v] [--config FILE]
    formroute check FORM

Form, response, forms, hosts and config files are YAML (JSON is accepted too).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from formroute.analyzer import analyze_form
from formroute.config import load_config
from formroute.engine import RoutingDecision, route_submission
from formroute.errors import NoEligibleHostError, RoutingError, SerializationError
from formroute.logging_config import configure_logging
from formroute.serialization import (
    action_to_dict,
    attribute_from_dict,
    form_from_dict,
    host_from_dict,
)

EXIT_WARNINGS = 1
EXIT_CONFIGURATION = 2
EXIT_NO_HOST = 3


def _load(path: str) -> Any:
    try:
        return yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise SerializationError(f"Invalid YAML in {path}: {exc}") from exc


def _parse_params(raw: List[str]) -> List[Tuple[str, str]]:
    pairs = []
    for item in raw:
        name, sep, value = item.partition("=")
        if not sep:
            raise SerializationError(f"Expected name=value, got {item!r}")
        pairs.append((name, value))
    return pairs


def decision_to_dict(decision: RoutingDecision) -> Dict[str, Any]:
    hosts = decision.matched_host_ids
    return {
        "action": action_to_dict(decision.action),
        "route_id": decision.route_id,
        "matched_by": decision.matched_by.value,
        "chain": list(decision.chain),
        "matched_host_ids": sorted(hosts, key=str) if hosts is not None else None,
        "forward_params": {k: list(v) for k, v in decision.forward_params.items()},
    }


def cmd_route(args: argparse.Namespace) -> int:
    form = form_from_dict(_load(args.form))
    response = _load(args.response) or {}

    fetch = None
    if args.forms:
        others = {f.id: f for f in (form_from_dict(d) for d in _load(args.forms) or [])}
        others.setdefault(form.id, form)

        def fetch(form_id: str):
            found = others.get(form_id)
            return found.route_table if found is not None else None

    hosts = None
    attributes = None
    if args.hosts:
        roster = _load(args.hosts) or {}
        hosts = [host_from_dict(h) for h in roster.get("hosts", [])]
        if "attributes" in roster:
            attributes = [attribute_from_dict(a) for a in roster["attributes"] or []]

    try:
        decision = route_submission(
            form,
            response,
            fetch_route_table=fetch,
            hosts=hosts,
            attributes=attributes,
            url_params=_parse_params(args.param),
            config=load_config(args.config),
        )
    except NoEligibleHostError as exc:
        print(f"error: {exc}", file=sys.stderr)
        print(json.dumps(decision_to_dict(exc.decision), indent=2))
        return EXIT_NO_HOST
    except RoutingError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION

    print(json.dumps(decision_to_dict(decision), indent=2))
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    report = analyze_form(form_from_dict(_load(args.form)))
    print(f"Form {report.form_id}: {report.total_routes} routes "
          f"({report.rule_routes} rule, {report.router_references} router), "
          f"{report.total_rules} rules, max depth {report.max_condition_depth}")
    for warning in report.warnings:
        print(f"  warning: {warning}")
    return EXIT_WARNINGS if report.warnings else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="formroute", description="Route form submissions")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON lines")
    sub = parser.add_subparsers(dest="command", required=True)

    route = sub.add_parser("route", help="Route one response and print the decision")
    route.add_argument("form", help="Form definition file")
    route.add_argument("response", help="Response file (field id -> value)")
    route.add_argument("--forms", help="File listing forms reachable through router references")
    route.add_argument("--hosts", help="File with team 'attributes' and 'hosts'")
    route.add_argument("--param", action="append", default=[], help="Incoming URL parameter name=value")
    route.add_argument("--config", help="Engine config file")
    route.set_defaults(func=cmd_route)

    check = sub.add_parser("check", help="Print authoring diagnostics for a form")
    check.add_argument("form", help="Form definition file")
    check.set_defaults(func=cmd_check)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose, log_json=args.log_json)
    try:
        return args.func(args)
    except SerializationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION


if __name__ == "__main__":
    sys.exit(main())

"""
Serialization helpers for formroute objects (Form, Route, condition trees, hosts).

Provides lossless JSON/YAML round-trip via intermediate dict representation.
This module intentionally keeps serialization structure stable and explicit.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List

import yaml

from formroute.conditions import Combinator, ConditionNode, Group, Operator, Rule
from formroute.errors import SerializationError
from formroute.model import Attribute, Field, FieldType, Form, Host, Option
from formroute.routes import Action, ActionKind, Route, RouterReference, RuleRoute


def _enum(enum_cls, raw):
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise SerializationError(f"Unknown {enum_cls.__name__} value: {raw!r}") from exc


def _require(d: Any, key: str):
    if not isinstance(d, dict):
        raise SerializationError(f"Expected a mapping, got {type(d).__name__}")
    if key not in d:
        raise SerializationError(f"Missing required key {key!r}")
    return d[key]


def _plain(value: Any) -> Any:
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    return value


def condition_to_dict(node: ConditionNode | None) -> Any:
    if node is None:
        return None
    if isinstance(node, Group):
        return {
            "type": "group",
            "combinator": node.combinator.value,
            "children": [condition_to_dict(c) for c in node.children],
        }
    if isinstance(node, Rule):
        return {
            "type": "rule",
            "field": node.field_id,
            "operator": node.operator.value,
            "value": _plain(node.value),
        }
    raise SerializationError(f"Unsupported condition node: {type(node)}")


def condition_from_dict(d: Any) -> ConditionNode | None:
    if d is None:
        return None
    t = _require(d, "type")
    if t == "group":
        return Group(
            combinator=_enum(Combinator, d.get("combinator", "AND")),
            children=tuple(condition_from_dict(c) for c in d.get("children", [])),
        )
    if t == "rule":
        value = d.get("value")
        if isinstance(value, list):
            value = tuple(value)
        return Rule(
            field_id=_require(d, "field"),
            operator=_enum(Operator, _require(d, "operator")),
            value=value,
        )
    raise SerializationError(f"Unsupported condition dict type: {t}")


def options_to_list(options) -> List[Dict[str, Any]]:
    return [{"id": o.id, "label": o.label} for o in options]


def options_from_list(items) -> tuple:
    return tuple(Option(id=str(_require(o, "id")), label=_require(o, "label")) for o in items or [])


def field_to_dict(f: Field) -> Dict[str, Any]:
    return {
        "id": f.id,
        "label": f.label,
        "type": f.type.value,
        "identifier": f.identifier,
        "options": options_to_list(f.options),
    }


def field_from_dict(d: Dict[str, Any]) -> Field:
    return Field(
        id=_require(d, "id"),
        label=d.get("label", ""),
        type=_enum(FieldType, d.get("type", "text")),
        identifier=d.get("identifier") or "",
        options=options_from_list(d.get("options")),
    )


def attribute_to_dict(a: Attribute) -> Dict[str, Any]:
    return {
        "id": a.id,
        "name": a.name,
        "type": a.type.value,
        "options": options_to_list(a.options),
        "team_id": a.team_id,
    }


def attribute_from_dict(d: Dict[str, Any]) -> Attribute:
    return Attribute(
        id=_require(d, "id"),
        name=d.get("name", ""),
        type=_enum(FieldType, d.get("type", "text")),
        options=options_from_list(d.get("options")),
        team_id=d.get("team_id"),
    )


def host_to_dict(h: Host) -> Dict[str, Any]:
    return {"id": h.id, "attributes": {k: _plain(v) for k, v in h.attribute_values.items()}}


def host_from_dict(d: Dict[str, Any]) -> Host:
    return Host(id=_require(d, "id"), attribute_values=dict(d.get("attributes") or {}))


def action_to_dict(a: Action) -> Dict[str, Any]:
    return {"kind": a.kind.value, "value": a.value}


def action_from_dict(d: Dict[str, Any]) -> Action:
    return Action(kind=_enum(ActionKind, _require(d, "kind")), value=d.get("value", ""))


def route_to_dict(r: Route) -> Dict[str, Any]:
    if isinstance(r, RouterReference):
        return {"id": r.id, "is_router": True, "name": r.name, "description": r.description}
    return {
        "id": r.id,
        "action": action_to_dict(r.action),
        "is_fallback": r.is_fallback,
        "query": condition_to_dict(r.query),
        "attributes_query": condition_to_dict(r.attributes_query),
    }


def route_from_dict(d: Dict[str, Any]) -> Route:
    route_id = str(_require(d, "id"))
    if d.get("is_router"):
        return RouterReference(id=route_id, name=d.get("name", ""), description=d.get("description", ""))
    query = condition_from_dict(d.get("query"))
    return RuleRoute(
        id=route_id,
        action=action_from_dict(_require(d, "action")),
        query=query if query is not None else Group(),
        attributes_query=condition_from_dict(d.get("attributes_query")),
        is_fallback=bool(d.get("is_fallback", False)),
    )


def form_to_dict(f: Form) -> Dict[str, Any]:
    return {
        "id": f.id,
        "name": f.name,
        "description": f.description,
        "team_id": f.team_id,
        "user_id": f.user_id,
        "fields": [field_to_dict(x) for x in f.fields],
        "routes": [route_to_dict(r) for r in f.routes],
    }


def form_from_dict(d: Dict[str, Any]) -> Form:
    return Form(
        id=str(_require(d, "id")),
        name=d.get("name", ""),
        description=d.get("description", ""),
        team_id=d.get("team_id"),
        user_id=d.get("user_id"),
        fields=tuple(field_from_dict(x) for x in d.get("fields", [])),
        routes=tuple(route_from_dict(r) for r in d.get("routes", [])),
    )


def form_to_json(f: Form) -> str:
    return json.dumps(form_to_dict(f), sort_keys=True)


def form_from_json(s: str) -> Form:
    try:
        d = json.loads(s)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Invalid JSON: {exc}") from exc
    return form_from_dict(d)


def form_to_yaml(f: Form) -> str:
    return yaml.safe_dump(form_to_dict(f), sort_keys=False)


def form_from_yaml(s: str) -> Form:
    try:
        d = yaml.safe_load(s)
    except yaml.YAMLError as exc:
        raise SerializationError(f"Invalid YAML: {exc}") from exc
    return form_from_dict(d)

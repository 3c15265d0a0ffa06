"""
Parameter forwarding to the booking stage.

Builds the ordered multi-map handed to the next stage from:
    1. the incoming URL parameters, minus routing-control parameters
    2. the response, keyed by field external name, displayed as labels
    3. the ids of the hosts matched by attribute routing
Response keys replace URL keys of the same name outright.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

from formroute.model import Field

DEFAULT_ROUTED_HOSTS_PARAM = "routedTeamMemberIds"
DEFAULT_ROUTING_CONTROL_PARAMS = ("form", "pages", "slug")

UrlParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


def _url_pairs(params: Optional[UrlParams]) -> Iterable[Tuple[str, str]]:
    if params is None:
        return
    items = params.items() if isinstance(params, Mapping) else params
    for name, value in items:
        if isinstance(value, (list, tuple)):
            for v in value:
                yield name, str(v)
        else:
            yield name, str(value)


def display_value(field: Field, value: Any) -> Union[str, List[str]]:
    """
    Render a normalized value for forwarding.

    Choice values become option labels; an option id that no longer exists
    is forwarded as-is. Numbers are stringified.
    """
    if field.type.has_options:
        items = value if isinstance(value, (list, tuple)) else [value]
        labels = []
        for item in items:
            if item is None:
                continue
            option = field.option_by_id(str(item))
            labels.append(option.label if option is not None else str(item))
        if field.type.is_multi_choice:
            return labels
        return labels[0] if labels else ""

    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _sort_key(host_id: Any):
    text = str(host_id)
    digits = text[1:] if text.startswith("-") else text
    if digits.isdecimal():
        return (0, int(text), "")
    return (1, 0, text)


def build_forward_parameters(
    response: Mapping[str, Any],
    fields: Iterable[Field],
    url_params: Optional[UrlParams] = None,
    matched_host_ids: Optional[Iterable[Any]] = None,
    routed_hosts_param: str = DEFAULT_ROUTED_HOSTS_PARAM,
    routing_control_params: Iterable[str] = DEFAULT_ROUTING_CONTROL_PARAMS,
) -> "OrderedDict[str, List[str]]":
    """
    Merge URL parameters, response values and routed hosts.

    Args:
        response: Normalized Response (field id -> value)
        fields: Field Catalog
        url_params: Incoming query parameters, as a mapping or (name, value) pairs
        matched_host_ids: Host ids from attribute routing, or None when it was
            not applied. An empty collection still emits the reserved key.
        routed_hosts_param: Reserved key for the host id list
        routing_control_params: URL parameters owned by the router itself

    Returns:
        Ordered mapping name -> list of values
    """
    excluded = set(routing_control_params)
    params: Dict[str, List[str]] = OrderedDict()

    for name, value in _url_pairs(url_params):
        if name in excluded:
            continue
        params.setdefault(name, []).append(value)

    by_id = {f.id: f for f in fields}
    for field_id, value in response.items():
        field = by_id.get(field_id)
        if field is None:
            continue
        shown = display_value(field, value)
        params[field.external_name] = shown if isinstance(shown, list) else [shown]

    if matched_host_ids is not None:
        ordered = sorted(matched_host_ids, key=_sort_key)
        params[routed_hosts_param] = [",".join(str(h) for h in ordered)]

    return params


def to_query_string(params: Mapping[str, Iterable[str]]) -> str:
    """Render a forward parameter multi-map as a query string."""
    return urlencode([(name, value) for name, values in params.items() for value in values])

"""
Tests for serialization and deserialization of formroute objects.

These tests ensure lossless JSON/YAML round-trip using the explicit
serialization functions in `formroute.serialization`.
"""

import pytest

from formroute.conditions import Combinator, Group, Operator, Rule
from formroute.errors import SerializationError
from formroute.examples import SENIORITY, build_example_sales_form
from formroute.model import Host
from formroute.routes import RouterReference
from formroute.serialization import (
    attribute_from_dict,
    attribute_to_dict,
    condition_from_dict,
    condition_to_dict,
    form_from_dict,
    form_from_json,
    form_from_yaml,
    form_to_dict,
    form_to_json,
    form_to_yaml,
    host_from_dict,
    host_to_dict,
    route_from_dict,
)


def build_sample_form():
    form = build_example_sales_form()
    form.routes = (RouterReference("other-form", "Other", "Shared rules"),) + form.routes
    return form


def test_json_roundtrip():
    form = build_sample_form()
    before = form_to_dict(form)
    restored = form_from_json(form_to_json(form))
    assert form_to_dict(restored) == before
    assert restored == form


def test_yaml_roundtrip():
    form = build_sample_form()
    restored = form_from_yaml(form_to_yaml(form))
    assert form_to_dict(restored) == form_to_dict(form)
    assert restored == form


def test_condition_dict_shape():
    tree = Group(Combinator.OR, (Rule("size", Operator.SELECT_ANY_IN, ("a", "b")), Group(Combinator.NOT, ())))
    assert condition_to_dict(tree) == {
        "type": "group",
        "combinator": "OR",
        "children": [
            {"type": "rule", "field": "size", "operator": "select_any_in", "value": ["a", "b"]},
            {"type": "group", "combinator": "NOT", "children": []},
        ],
    }
    assert condition_from_dict(condition_to_dict(tree)) == tree


def test_route_without_query_matches_all():
    route = route_from_dict({"id": "r", "action": {"kind": "custom_message", "value": "hi"}})
    assert route.query == Group()
    assert not route.is_fallback


def test_hosts_and_attributes():
    host = Host(id=4, attribute_values={"seniority": "senior"})
    assert host_from_dict(host_to_dict(host)) == host
    assert attribute_from_dict(attribute_to_dict(SENIORITY)) == SENIORITY


@pytest.mark.parametrize("payload", [
    {"type": "mystery"},
    {"type": "rule", "field": "x", "operator": "resembles"},
    {"type": "rule", "operator": "equals"},
    {"type": "group", "combinator": "XOR"},
    "not a mapping",
])
def test_malformed_conditions(payload):
    with pytest.raises(SerializationError):
        condition_from_dict(payload)


def test_malformed_forms():
    with pytest.raises(SerializationError):
        form_from_dict({"name": "no id"})
    with pytest.raises(SerializationError):
        form_from_json("{not json")
    with pytest.raises(SerializationError):
        form_from_yaml("routes: [unclosed")
    with pytest.raises(SerializationError):
        route_from_dict({"id": "r", "action": {"kind": "teleport"}})

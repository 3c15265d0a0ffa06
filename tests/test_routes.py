"""
Tests for Route Table structure: invariants, fallback repair and reordering.
"""

import pytest
from conftest import fallback, rule_route

from formroute.conditions import Operator, Rule
from formroute.errors import RouteTableError, SelfReferenceError
from formroute.routes import (
    DEFAULT_FALLBACK_MESSAGE,
    Action,
    ActionKind,
    RouterReference,
    RouteTable,
    RuleRoute,
    create_fallback_route,
)


def table(*routes, form_id="form-a"):
    return RouteTable(form_id=form_id, routes=routes)


class TestAction:

    def test_targets_event(self):
        assert Action(ActionKind.EVENT_REDIRECT, "team/general").targets_event
        assert not Action(ActionKind.EXTERNAL_REDIRECT, "https://example.com").targets_event


class TestRuleRoute:

    def test_defaults(self):
        route = RuleRoute(id="r1", action=Action(ActionKind.CUSTOM_MESSAGE, "hi"))
        assert not route.is_fallback
        assert route.attributes_query is None
        assert not route.has_rules

    def test_has_rules(self):
        assert rule_route("r1", Rule("f_name", Operator.IS_EMPTY)).has_rules

    def test_router_reference_is_never_fallback(self):
        assert RouterReference(id="form-b").is_fallback is False


class TestValidate:

    def test_valid_table(self):
        table(rule_route("r1"), RouterReference("form-b"), fallback()).validate()

    def test_missing_fallback(self):
        with pytest.raises(RouteTableError, match="exactly one fallback"):
            table(rule_route("r1")).validate()

    def test_two_fallbacks(self):
        with pytest.raises(RouteTableError, match="found 2"):
            table(fallback("fb1"), fallback("fb2")).validate()

    def test_fallback_must_be_last(self):
        with pytest.raises(RouteTableError, match="must be last"):
            table(fallback(), rule_route("r1")).validate()

    def test_duplicate_ids(self):
        with pytest.raises(RouteTableError, match="Duplicate route id"):
            table(rule_route("r1"), rule_route("r1"), fallback()).validate()

    def test_self_reference(self):
        with pytest.raises(SelfReferenceError) as excinfo:
            table(RouterReference("form-a"), fallback()).validate()
        assert excinfo.value.form_id == "form-a"


class TestWithFallback:

    def test_creates_missing_fallback(self):
        repaired = table(rule_route("r1")).with_fallback()
        assert len(repaired.routes) == 2
        created = repaired.routes[-1]
        assert created.is_fallback
        assert created.action == Action(ActionKind.CUSTOM_MESSAGE, DEFAULT_FALLBACK_MESSAGE)
        repaired.validate()

    def test_custom_message(self):
        repaired = table().with_fallback("Bye")
        assert repaired.fallback.action.value == "Bye"

    def test_moves_fallback_last(self):
        fb = fallback()
        repaired = table(fb, rule_route("r1"), rule_route("r2")).with_fallback()
        assert [r.id for r in repaired.routes] == ["r1", "r2", "fallback"]

    def test_already_valid_table_unchanged(self):
        original = table(rule_route("r1"), fallback())
        assert original.with_fallback() is original

    def test_created_fallbacks_have_unique_ids(self):
        assert create_fallback_route().id != create_fallback_route().id


class TestReorder:

    def test_move_up(self):
        t = table(rule_route("r1"), rule_route("r2"), fallback())
        assert [r.id for r in t.move_up("r2").routes] == ["r2", "r1", "fallback"]
        # The original snapshot is untouched
        assert [r.id for r in t.routes] == ["r1", "r2", "fallback"]

    def test_move_up_first_is_noop(self):
        t = table(rule_route("r1"), fallback())
        assert t.move_up("r1") is t

    def test_move_down_stops_above_fallback(self):
        t = table(rule_route("r1"), RouterReference("form-b"), fallback())
        moved = t.move_down("r1")
        assert [r.id for r in moved.routes] == ["form-b", "r1", "fallback"]
        assert moved.move_down("r1") is moved

    def test_fallback_cannot_move(self):
        with pytest.raises(RouteTableError):
            table(rule_route("r1"), fallback()).move_up("fallback")

    def test_unknown_route(self):
        with pytest.raises(RouteTableError, match="Unknown route"):
            table(fallback()).move_down("nope")


def test_lookup_helpers():
    t = table(rule_route("r1"), RouterReference("form-b"), fallback())
    assert t.get_route("r1").id == "r1"
    assert t.get_route("zzz") is None
    assert [r.id for r in t.references] == ["form-b"]
    assert t.fallback.id == "fallback"

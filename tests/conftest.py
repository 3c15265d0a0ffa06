"""Shared builders for formroute tests."""

import pytest

from formroute.conditions import Combinator, Group
from formroute.model import Field, FieldType, Form, Option
from formroute.routes import Action, ActionKind, RouteTable, RuleRoute


def rule_route(route_id, *rules, action=None, combinator=Combinator.AND):
    return RuleRoute(
        id=route_id,
        action=action or Action(ActionKind.CUSTOM_MESSAGE, route_id),
        query=Group(combinator, rules),
    )


def fallback(route_id="fallback", value="default"):
    return RuleRoute(id=route_id, action=Action(ActionKind.CUSTOM_MESSAGE, value), is_fallback=True)


@pytest.fixture
def fields():
    return (
        Field(id="f_name", label="Name", type=FieldType.TEXT, identifier="name"),
        Field(id="f_budget", label="Budget", type=FieldType.NUMBER, identifier="budget"),
        Field(
            id="f_country",
            label="Country",
            type=FieldType.SELECT,
            identifier="country",
            options=(Option("fr", "France"), Option("de", "Germany"), Option("be", "Belgium")),
        ),
        Field(
            id="f_topics",
            label="Topics",
            type=FieldType.MULTISELECT,
            identifier="topics",
            options=(Option("t1", "Billing"), Option("t2", "Support"), Option("t3", "Sales")),
        ),
    )


@pytest.fixture
def make_form(fields):
    def _make(form_id="form-a", routes=None, **kwargs):
        return Form(id=form_id, name=form_id.upper(), fields=fields,
                    routes=tuple(routes if routes is not None else [fallback()]), **kwargs)
    return _make


@pytest.fixture
def forms_fetcher():
    """Build a route table fetcher over {form_id: [routes]}."""
    def _build(tables, fields=None):
        def fetch(form_id):
            routes = tables.get(form_id)
            if routes is None:
                return None
            return RouteTable(form_id=form_id, routes=tuple(routes), fields=fields)
        return fetch
    return _build



"""
End-to-end routing of submissions.
"""

import logging

import pytest
from conftest import fallback, rule_route

from formroute.conditions import Combinator, Group, Operator, Rule
from formroute.config import EngineConfig
from formroute.engine import route_submission
from formroute.errors import CyclicRoutingError, FormNotFoundError, NoEligibleHostError
from formroute.model import Attribute, Field, FieldType, Form, Host, ResponseEntry
from formroute.router import MatchKind
from formroute.routes import Action, ActionKind, RouterReference, RouteTable, RuleRoute

BUDGET = Field(id="budget", label="Budget", type=FieldType.NUMBER, identifier="budget")
SENIORITY = Attribute(id="seniority", name="Seniority")
ROSTER = [
    Host(id=1, attribute_values={"seniority": "senior"}),
    Host(id=2, attribute_values={"seniority": "junior"}),
]


def budget_form():
    return Form(
        id="intake",
        fields=(BUDGET,),
        routes=(
            RuleRoute(
                id="sales",
                action=Action(ActionKind.EXTERNAL_REDIRECT, "https://sales.example.com"),
                query=Group(Combinator.AND, (Rule("budget", Operator.GREATER, 1000),)),
            ),
            RuleRoute(
                id="fallback",
                action=Action(ActionKind.EVENT_REDIRECT, "team/general"),
                is_fallback=True,
            ),
        ),
    )


def team_form(required_seniority):
    return Form(
        id="team",
        fields=(BUDGET,),
        routes=(
            RuleRoute(
                id="pooled",
                action=Action(ActionKind.EVENT_REDIRECT, "team/demo"),
                attributes_query=Group(
                    Combinator.AND, (Rule("seniority", Operator.EQUALS, required_seniority),)
                ),
                is_fallback=True,
            ),
        ),
        team_id=1,
    )


class TestBudgetScenario:

    def test_large_budget_goes_to_sales(self):
        decision = route_submission(budget_form(), [ResponseEntry("budget", 1500)])
        assert decision.action == Action(ActionKind.EXTERNAL_REDIRECT, "https://sales.example.com")
        assert decision.route_id == "sales"
        assert decision.matched_by is MatchKind.RULE
        assert decision.matched_host_ids is None

    def test_small_budget_falls_back(self):
        decision = route_submission(budget_form(), {"budget": 200})
        assert decision.action == Action(ActionKind.EVENT_REDIRECT, "team/general")
        assert decision.matched_by is MatchKind.FALLBACK

    def test_string_budget_is_normalized(self):
        assert route_submission(budget_form(), {"budget": "1500"}).route_id == "sales"

    def test_missing_fallback_uses_configured_message(self, caplog):
        form = Form(id="nofb", fields=(BUDGET,), routes=())
        with caplog.at_level(logging.WARNING, logger="formroute"):
            decision = route_submission(form, {}, config=EngineConfig(fallback_message="Bye"))
        assert decision.action == Action(ActionKind.CUSTOM_MESSAGE, "Bye")
        assert decision.matched_by is MatchKind.FALLBACK
        assert "has no fallback route" in caplog.text

    def test_forward_params(self):
        decision = route_submission(budget_form(), {"budget": 200}, url_params={"budget": "9", "form": "intake"})
        assert decision.forward_params == {"budget": ["200"]}


class TestTeamScenario:

    def test_matching_hosts(self):
        decision = route_submission(team_form("senior"), {}, hosts=ROSTER, attributes=[SENIORITY])
        assert decision.matched_host_ids == {1}
        assert decision.forward_params["routedTeamMemberIds"] == ["1"]
        assert decision.has_eligible_hosts

    def test_no_eligible_host(self, caplog):
        with caplog.at_level(logging.WARNING, logger="formroute"):
            with pytest.raises(NoEligibleHostError) as excinfo:
                route_submission(team_form("lead"), {}, hosts=ROSTER, attributes=[SENIORITY])
        decision = excinfo.value.decision
        assert decision.matched_host_ids == frozenset()
        assert decision.action.value == "team/demo"
        assert "No eligible host" in caplog.text

    def test_roster_alone_is_enough_to_filter(self):
        assert route_submission(team_form("senior"), {}, hosts=ROSTER).matched_host_ids == {1}
        with pytest.raises(NoEligibleHostError):
            route_submission(team_form("lead"), {}, hosts=ROSTER)

    def test_no_eligible_host_as_outcome(self):
        config = EngineConfig(require_eligible_host=False)
        decision = route_submission(team_form("lead"), {}, hosts=ROSTER, attributes=[SENIORITY], config=config)
        assert not decision.has_eligible_hosts
        assert decision.forward_params["routedTeamMemberIds"] == [""]

    def test_filter_skipped_without_roster(self):
        decision = route_submission(team_form("lead"), {})
        assert decision.matched_host_ids is None
        assert "routedTeamMemberIds" not in decision.forward_params

    def test_filter_skipped_for_non_event_actions(self):
        decision = route_submission(budget_form(), {"budget": 5000}, hosts=ROSTER, attributes=[SENIORITY])
        assert decision.matched_host_ids is None

    def test_custom_host_param(self):
        config = EngineConfig(routed_hosts_param="hosts")
        decision = route_submission(team_form("senior"), {}, hosts=ROSTER, attributes=[SENIORITY], config=config)
        assert decision.forward_params == {"hosts": ["1"]}


class TestChains:

    def test_router_reference_followed(self, make_form):
        target = make_form("form-b", routes=[rule_route("b-hit", Rule("f_name", Operator.IS_NOT_EMPTY)), fallback()])
        entry = make_form("form-a", routes=[RouterReference("form-b"), fallback()])
        forms = {f.id: f for f in (entry, target)}

        decision = route_submission(entry, {"f_name": "Ada"}, fetch_route_table=lambda i: forms[i].route_table)
        assert decision.route_id == "b-hit"
        assert decision.chain == ("form-a", "form-b")

    def test_reference_without_fetcher_is_fatal(self, make_form):
        entry = make_form("form-a", routes=[RouterReference("form-b"), fallback()])
        with pytest.raises(FormNotFoundError, match="form-b"):
            route_submission(entry, {})

    def test_fetched_table_without_catalog_uses_entry_fields(self, make_form):
        target = RouteTable(
            form_id="form-b",
            routes=(rule_route("b-hit", Rule("f_name", Operator.EQUALS, "ada")), fallback()),
        )
        entry = make_form("form-a", routes=[RouterReference("form-b"), fallback()])

        decision = route_submission(entry, {"f_name": "Ada"}, fetch_route_table=lambda i: target)
        assert decision.route_id == "b-hit"
        assert decision.chain == ("form-a", "form-b")

    def test_cycle_is_fatal(self, make_form, caplog):
        a = make_form("form-a", routes=[RouterReference("form-b"), fallback()])
        b = make_form("form-b", routes=[RouterReference("form-a"), fallback()])
        forms = {f.id: f for f in (a, b)}
        with caplog.at_level(logging.WARNING, logger="formroute"):
            with pytest.raises(CyclicRoutingError):
                route_submission(a, {}, fetch_route_table=lambda i: forms[i].route_table)
        assert "Routing form form-a failed" in caplog.text

"""
Example routing form for demos and tests.

Builds a sales intake form: large budgets go to the sales site, enterprise
leads go to a pooled team event narrowed by host seniority, everything
else lands on the general team event.
"""
from formroute.conditions import Combinator, Group, Operator, Rule
from formroute.model import Attribute, Field, FieldType, Form, Host, Option
from formroute.routes import Action, ActionKind, RuleRoute

SENIORITY = Attribute(
    id="seniority",
    name="Seniority",
    type=FieldType.SELECT,
    options=(Option("senior", "Senior"), Option("junior", "Junior"), Option("lead", "Lead")),
    team_id=1,
)


def build_example_sales_form(form_id: str = "sales-intake", team_id: int = 1) -> Form:
    fields = (
        Field(id="budget", label="Budget", type=FieldType.NUMBER, identifier="budget"),
        Field(
            id="size",
            label="Company size",
            type=FieldType.SELECT,
            identifier="company_size",
            options=(
                Option("small", "1-10"),
                Option("mid", "11-200"),
                Option("enterprise", "200+"),
            ),
        ),
        Field(id="email", label="Work email", type=FieldType.EMAIL),
    )

    big_budget = RuleRoute(
        id="big-budget",
        action=Action(ActionKind.EXTERNAL_REDIRECT, "https://sales.example.com"),
        query=Group(Combinator.AND, (Rule("budget", Operator.GREATER, 1000),)),
    )

    # Enterprise leads only go to senior hosts
    enterprise = RuleRoute(
        id="enterprise",
        action=Action(ActionKind.EVENT_REDIRECT, "team/enterprise-demo"),
        query=Group(Combinator.AND, (Rule("size", Operator.SELECT_ANY_IN, ("enterprise",)),)),
        attributes_query=Group(
            Combinator.AND, (Rule("seniority", Operator.EQUALS, "senior"),)
        ),
    )

    fallback = RuleRoute(
        id="fallback",
        action=Action(ActionKind.EVENT_REDIRECT, "team/general"),
        is_fallback=True,
    )

    return Form(
        id=form_id,
        name="Sales intake",
        description="Qualifies inbound leads",
        fields=fields,
        routes=(big_budget, enterprise, fallback),
        team_id=team_id,
    )


def build_example_roster():
    return [
        Host(id=1, attribute_values={"seniority": "senior"}),
        Host(id=2, attribute_values={"seniority": "junior"}),
        Host(id=3, attribute_values={"seniority": "Senior"}),
    ]

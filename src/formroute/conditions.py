"""
Condition Tree for formroute

Every routing rule (form-field queries and host-attribute queries alike)
is represented as a tree of groups and leaf comparisons, never as a
string or a UI widget state.

This ensures:
    - One evaluation contract for both rule sets
    - Serialization capability
    - Immutability at evaluation time

ARCHITECTURAL RULE:
    The root of every tree is a Group.
    Nodes carry structure only; evaluation lives in formroute.evaluator.
"""

from abc import ABC
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Tuple


class ConditionNode(ABC):
    """
    Base class for all condition tree nodes.

    It exists to provide type-safety for the node hierarchy.

    DO NOT:
        - Add evaluation logic here (belongs in formroute.evaluator)
        - Add rendering logic here (belongs in the authoring surface)
    """
    pass


class Combinator(Enum):
    """Boolean combinators for a Group."""

    AND = "AND"
    OR = "OR"
    NOT = "NOT"


class Operator(Enum):
    """
    Leaf comparison operators.

    Select-style operators compare option ids, never labels.
    """

    # Equality
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"

    # Text
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"

    # Presence
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    # Numeric
    GREATER = "greater"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS = "less"
    LESS_OR_EQUAL = "less_or_equal"
    BETWEEN = "between"
    NOT_BETWEEN = "not_between"

    # Choice sets
    SELECT_ANY_IN = "select_any_in"
    SELECT_NOT_ANY_IN = "select_not_any_in"
    MULTISELECT_SOME_IN = "multiselect_some_in"
    MULTISELECT_ALL_IN = "multiselect_all_in"
    MULTISELECT_EQUALS = "multiselect_equals"
    MULTISELECT_NOT_EQUALS = "multiselect_not_equals"


# Operators that take no comparand
UNARY_OPERATORS = frozenset({Operator.IS_EMPTY, Operator.IS_NOT_EMPTY})


@dataclass(frozen=True)
class Rule(ConditionNode):
    """
    A leaf comparison of one field (or attribute) against a comparand.

    Example:
        budget > 1000

    Becomes:
        Rule(field_id="budget", operator=Operator.GREATER, value=1000)

    Properties:
        field_id: Id of the form field or host attribute being tested
        operator: Operator enum
        value: Comparand. A scalar, or a tuple for set/range operators

    IMPORTANT:
        A Rule does NOT validate that field_id exists.
        A dangling reference is skipped at evaluation time.
    """

    field_id: str
    operator: Operator
    value: Any = None


@dataclass(frozen=True)
class Group(ConditionNode):
    """
    A boolean combination of child nodes.

    Example:
        (country == "fr" OR country == "be") AND seats > 10

    Becomes:
        Group(Combinator.AND, (
            Group(Combinator.OR, (
                Rule("country", Operator.EQUALS, "fr"),
                Rule("country", Operator.EQUALS, "be"),
            )),
            Rule("seats", Operator.GREATER, 10),
        ))

    Semantics of an empty children tuple:
        AND -> matches everything
        OR  -> matches nothing

    A NOT group negates its single child.
    """

    combinator: Combinator = Combinator.AND
    children: Tuple[ConditionNode, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Lists are accepted at construction but stored as tuples.
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))

    @property
    def is_empty(self) -> bool:
        return not self.children


def match_all() -> Group:
    """Return the empty AND group, which matches every context."""
    return Group(Combinator.AND, ())


def iter_rules(node: ConditionNode):
    """Yield every Rule in a tree, depth-first, in stored order."""
    if isinstance(node, Rule):
        yield node
    elif isinstance(node, Group):
        for child in node.children:
            yield from iter_rules(child)


def tree_depth(node: ConditionNode | None) -> int:
    """Nesting depth of a tree; a lone empty group has depth 1."""
    if node is None:
        return 0
    if isinstance(node, Group):
        return 1 + max((tree_depth(c) for c in node.children), default=0)
    return 1

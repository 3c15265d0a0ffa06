"""
Condition tree interpreter.

evaluate(node, context) is a pure function: it reads values from the
context, never mutates the tree, and raises nothing for bad data.

Dangling references:
    A Rule whose field (or attribute) id is missing from the catalog has no
    opinion. It is dropped from its group; a group whose children are all
    dropped is itself dropped; a dropped root matches. A stale rule can
    therefore never make its group fail.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from formroute.conditions import Combinator, ConditionNode, Group, Operator, Rule
from formroute.model import FieldType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationContext:
    """
    Values under test plus the catalog that types them.

    Properties:
        values: field/attribute id -> value(s)
        catalog: field/attribute id -> Field or Attribute
    """

    values: Mapping[str, Any] = field(default_factory=dict)
    catalog: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def for_response(cls, fields: Iterable[Any], response: Mapping[str, Any]) -> EvaluationContext:
        return cls(values=dict(response), catalog={f.id: f for f in fields})

    @classmethod
    def for_host(cls, attributes: Iterable[Any], host: Any) -> EvaluationContext:
        return cls(values=dict(host.attribute_values), catalog={a.id: a for a in attributes})


def evaluate(node: ConditionNode | None, context: EvaluationContext) -> bool:
    """Evaluate a condition tree. A missing tree matches everything."""
    if node is None:
        return True
    result = _evaluate(node, context)
    return True if result is None else result


def _evaluate(node: ConditionNode, context: EvaluationContext) -> Optional[bool]:
    if isinstance(node, Group):
        return _evaluate_group(node, context)
    if isinstance(node, Rule):
        return _evaluate_rule(node, context)
    raise TypeError(f"Unsupported condition node: {type(node)}")


def _evaluate_group(group: Group, context: EvaluationContext) -> Optional[bool]:
    # Every child is evaluated so the set of fields read does not depend on order.
    results = [_evaluate(child, context) for child in group.children]
    opinions = [r for r in results if r is not None]
    if results and not opinions:
        return None

    if group.combinator is Combinator.AND:
        return all(opinions)
    if group.combinator is Combinator.OR:
        return any(opinions)
    if group.combinator is Combinator.NOT:
        return not all(opinions)
    raise ValueError(f"Unsupported combinator: {group.combinator}")


def _evaluate_rule(rule: Rule, context: EvaluationContext) -> Optional[bool]:
    slot = context.catalog.get(rule.field_id)
    if slot is None:
        logger.debug("Skipping rule on unknown field %s", rule.field_id)
        return None

    value = context.values.get(rule.field_id)
    handler = _HANDLERS.get(rule.operator)
    if handler is None:
        raise ValueError(f"Unsupported operator: {rule.operator}")
    return handler(value, rule.value, slot)


# =========================================================================
# Value helpers
# =========================================================================


def is_empty(value: Any) -> bool:
    """None, empty string and empty sequences all count as empty."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def to_number(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings; anything else yields None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _option_id(raw: Any, slot: Any) -> str:
    """Map an option id or label to the option id; unknown values pass through."""
    text = str(raw)
    options = getattr(slot, "options", ()) or ()
    for option in options:
        if option.id == text:
            return option.id
    for option in options:
        if option.label == text:
            return option.id
    return text


def _choice_ids(value: Any, slot: Any) -> Tuple[str, ...]:
    return tuple(_option_id(v, slot) for v in _as_list(value) if not is_empty(v))


def _text(value: Any) -> str:
    return str(value).strip().casefold()


def _texts(value: Any) -> list:
    return [_text(v) for v in _as_list(value) if v is not None]


def _is_choice(slot: Any) -> bool:
    return isinstance(slot.type, FieldType) and slot.type.has_options


def _is_multi(slot: Any) -> bool:
    return isinstance(slot.type, FieldType) and slot.type.is_multi_choice


# =========================================================================
# Operator handlers: (value, comparand, slot) -> bool
# =========================================================================


def _equals(value: Any, comparand: Any, slot: Any) -> bool:
    if is_empty(value):
        return False
    if _is_multi(slot):
        return _multiselect_equals(value, comparand, slot)
    if _is_choice(slot):
        chosen = _choice_ids(value, slot)
        return bool(chosen) and chosen[0] == _option_id(comparand, slot)
    if slot.type is FieldType.NUMBER:
        left, right = to_number(value), to_number(comparand)
        return left is not None and right is not None and left == right
    return _text(comparand) in _texts(value)


def _contains(value: Any, comparand: Any, slot: Any) -> bool:
    if is_empty(value):
        return False
    if _is_choice(slot):
        wanted = _choice_ids(comparand, slot)
        return bool(wanted) and set(wanted) <= set(_choice_ids(value, slot))
    needle = _text(comparand)
    return any(needle in text for text in _texts(value))


def _starts_with(value: Any, comparand: Any, slot: Any) -> bool:
    return any(text.startswith(_text(comparand)) for text in _texts(value)) if not is_empty(value) else False


def _ends_with(value: Any, comparand: Any, slot: Any) -> bool:
    return any(text.endswith(_text(comparand)) for text in _texts(value)) if not is_empty(value) else False


def _compare(predicate):
    def handler(value: Any, comparand: Any, slot: Any) -> bool:
        left, right = to_number(value), to_number(comparand)
        if left is None or right is None:
            return False
        return predicate(left, right)
    return handler


def _bounds(comparand: Any) -> Optional[Tuple[float, float]]:
    items = _as_list(comparand)
    if len(items) != 2:
        return None
    low, high = to_number(items[0]), to_number(items[1])
    if low is None or high is None:
        return None
    return low, high


def _between(value: Any, comparand: Any, slot: Any) -> bool:
    number, bounds = to_number(value), _bounds(comparand)
    if number is None or bounds is None:
        return False
    return bounds[0] <= number <= bounds[1]


def _not_between(value: Any, comparand: Any, slot: Any) -> bool:
    number, bounds = to_number(value), _bounds(comparand)
    if number is None or bounds is None:
        return False
    return not bounds[0] <= number <= bounds[1]


def _select_any_in(value: Any, comparand: Any, slot: Any) -> bool:
    chosen = _choice_ids(value, slot)
    return bool(chosen) and chosen[0] in set(_choice_ids(comparand, slot))


def _multiselect_some_in(value: Any, comparand: Any, slot: Any) -> bool:
    return bool(set(_choice_ids(value, slot)) & set(_choice_ids(comparand, slot)))


def _multiselect_all_in(value: Any, comparand: Any, slot: Any) -> bool:
    wanted = set(_choice_ids(comparand, slot))
    return bool(wanted) and wanted <= set(_choice_ids(value, slot))


def _multiselect_equals(value: Any, comparand: Any, slot: Any) -> bool:
    chosen = set(_choice_ids(value, slot))
    return bool(chosen) and chosen == set(_choice_ids(comparand, slot))


def _negate(handler):
    def negated(value: Any, comparand: Any, slot: Any) -> bool:
        return not handler(value, comparand, slot)
    return negated


_HANDLERS: Dict[Operator, Any] = {
    Operator.EQUALS: _equals,
    Operator.NOT_EQUALS: _negate(_equals),
    Operator.CONTAINS: _contains,
    Operator.NOT_CONTAINS: _negate(_contains),
    Operator.STARTS_WITH: _starts_with,
    Operator.ENDS_WITH: _ends_with,
    Operator.IS_EMPTY: lambda value, comparand, slot: is_empty(value),
    Operator.IS_NOT_EMPTY: lambda value, comparand, slot: not is_empty(value),
    Operator.GREATER: _compare(lambda a, b: a > b),
    Operator.GREATER_OR_EQUAL: _compare(lambda a, b: a >= b),
    Operator.LESS: _compare(lambda a, b: a < b),
    Operator.LESS_OR_EQUAL: _compare(lambda a, b: a <= b),
    Operator.BETWEEN: _between,
    Operator.NOT_BETWEEN: _not_between,
    Operator.SELECT_ANY_IN: _select_any_in,
    Operator.SELECT_NOT_ANY_IN: _negate(_select_any_in),
    Operator.MULTISELECT_SOME_IN: _multiselect_some_in,
    Operator.MULTISELECT_ALL_IN: _multiselect_all_in,
    Operator.MULTISELECT_EQUALS: _multiselect_equals,
    Operator.MULTISELECT_NOT_EQUALS: _negate(_multiselect_equals),
}

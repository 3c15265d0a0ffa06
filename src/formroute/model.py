"""
Core Form Model Objects

Defines the catalogs and payloads the routing engine reads:
    - Fields (typed form inputs)
    - Attributes (typed host properties, scoped to a team)
    - Response entries (one submitted answer)
    - Hosts (team members eligible for a pooled event)
    - Forms (root container owning fields and routes)

ARCHITECTURAL RULE:
    These objects:
        - Are immutable snapshots for the duration of an evaluation
        - Are fully serializable
        - Represent data, not behavior
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from formroute.routes import Route, RouteTable


class FieldType(Enum):
    """Declared type of a form field or host attribute."""

    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"

    @property
    def is_single_choice(self) -> bool:
        return self in (FieldType.SELECT, FieldType.RADIO)

    @property
    def is_multi_choice(self) -> bool:
        return self in (FieldType.MULTISELECT, FieldType.CHECKBOX)

    @property
    def has_options(self) -> bool:
        return self.is_single_choice or self.is_multi_choice


@dataclass(frozen=True)
class Option:
    """One entry of a choice field's id -> label table."""

    id: str
    label: str


@dataclass(frozen=True)
class Field:
    """
    A typed form input.

    Properties:
        id:
            Internal, stable identifier referenced by condition trees
        identifier:
            External name used when forwarding parameters (may be empty)
        label:
            Human-readable question text
        type:
            FieldType enum
        options:
            Ordered option table for choice types, empty otherwise
    """

    id: str
    label: str
    type: FieldType = FieldType.TEXT
    identifier: str = ""
    options: Tuple[Option, ...] = ()

    @property
    def external_name(self) -> str:
        """The identifier, or the label when no identifier was set."""
        return self.identifier or self.label

    def option_by_id(self, option_id: str) -> Optional[Option]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def option_by_label(self, label: str) -> Optional[Option]:
        for option in self.options:
            if option.label == label:
                return option
        return None


@dataclass(frozen=True)
class Attribute:
    """
    A typed host attribute (e.g. "seniority", "region") scoped to a team.

    Attributes share the evaluation rules of fields, so they expose the same
    id / type / options shape.
    """

    id: str
    name: str
    type: FieldType = FieldType.TEXT
    options: Tuple[Option, ...] = ()
    team_id: Optional[int] = None

    def option_by_id(self, option_id: str) -> Optional[Option]:
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    def option_by_label(self, label: str) -> Optional[Option]:
        for option in self.options:
            if option.label == label:
                return option
        return None


ResponseValue = Union[str, int, float, Sequence[str], None]


@dataclass(frozen=True)
class ResponseEntry:
    """One submitted answer, keyed by field id."""

    field_id: str
    value: ResponseValue


@dataclass(frozen=True)
class Host:
    """
    A team member who may be assigned a pooled event.

    Properties:
        id: Host identifier (usually the user id)
        attribute_values: attribute id -> value(s)
    """

    id: Union[int, str]
    attribute_values: Mapping[str, Any] = field(default_factory=dict)


@dataclass
class Form:
    """
    Root container for a routing form.

    Properties:
        id:
            Form identifier, also used as the id of router references to it
        name / description:
            Display metadata, copied into router references
        fields:
            The Field Catalog
        routes:
            Ordered routes, terminated by the fallback
        team_id / user_id:
            Owner context, used to decide which forms may reference which

    INVARIANTS:
        - Field ids are unique
        - routes satisfies the Route Table invariants (see RouteTable.validate)
    """

    id: str
    name: str = ""
    description: str = ""
    fields: Tuple[Field, ...] = ()
    routes: Tuple[Route, ...] = ()
    team_id: Optional[int] = None
    user_id: Optional[int] = None

    @property
    def is_team_form(self) -> bool:
        return self.team_id is not None

    @property
    def route_table(self) -> RouteTable:
        return RouteTable(form_id=self.id, routes=tuple(self.routes), fields=tuple(self.fields))

    def get_field(self, field_id: str) -> Optional[Field]:
        """
        Retrieve a field by id.

        Returns:
            Field object or None if not found
        """
        for f in self.fields:
            if f.id == field_id:
                return f
        return None


def catalog_by_id(items) -> Dict[str, Any]:
    """Index a Field or Attribute sequence by id."""
    return {item.id: item for item in items}

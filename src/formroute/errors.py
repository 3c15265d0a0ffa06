"""
Typed routing outcomes.

Configuration errors (self reference, cycles, dangling references, broken
tables) are fatal to the evaluation that hit them. An empty host filter
result is surfaced as NoEligibleHostError so callers can branch on it.
"""

from typing import List, Optional


class RoutingError(Exception):
    """Base class for every error raised by formroute."""
    pass


class RouteTableError(RoutingError):
    """Raised when a Route Table violates its structural invariants."""

    def __init__(self, message: str, form_id: Optional[str] = None):
        super().__init__(message)
        self.form_id = form_id


class SelfReferenceError(RouteTableError):
    """A form's Route Table contains a router reference to the form itself."""

    def __init__(self, form_id: str):
        super().__init__(f"Form {form_id!r} cannot route through itself", form_id=form_id)


class CyclicRoutingError(RoutingError):
    """Following router references revisited a form."""

    def __init__(self, path: List[str]):
        self.path = list(path)
        super().__init__(f"Cyclic router references: {' -> '.join(self.path)}")


class FormNotFoundError(RoutingError):
    """A router reference points at a form that no longer exists."""

    def __init__(self, form_id: str):
        super().__init__(f"Referenced form {form_id!r} was not found")
        self.form_id = form_id


class NoEligibleHostError(RoutingError):
    """
    The attribute query excluded every host of a team event.

    The decision that produced the empty host set is attached so the
    caller can still show which destination was chosen.
    """

    def __init__(self, decision):
        super().__init__("No host satisfies the attribute routing rules")
        self.decision = decision


class SerializationError(ValueError):
    """Raised when a dict/JSON/YAML payload cannot be decoded."""
    pass

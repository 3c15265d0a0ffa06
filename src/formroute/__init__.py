"""
formroute: routing decision engine for form submissions.

Given a form definition and a submitted response, formroute selects
exactly one destination (a bookable event, an external URL, a message)
by walking an ordered table of conditional routes, optionally following
references to other forms' tables, narrows the hosts of team events by
their attributes, and builds the parameters forwarded to booking.

ARCHITECTURAL GUARANTEE:
------------------------
Everything here is pure computation over in-memory snapshots.
Fetching forms, rosters and responses, and acting on the decision,
belong to the caller.
"""

__version__ = "0.1.0"

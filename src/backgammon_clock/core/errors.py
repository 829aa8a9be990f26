"""Error taxonomy for the match engine.

Every error is recoverable. The engine catches them at its operation
boundary and reports a `Rejected` result instead of letting them escape.
"""

from __future__ import annotations


class MatchError(Exception):
    """Base class for every rejection raised inside the engine."""


class InvalidTransition(MatchError):  # noqa: N818
    """Operation fired for the wrong player or in an infeasible phase."""


class FeatureDisabled(MatchError):  # noqa: N818
    """Cube, dice or timer operation while that feature is switched off."""


class EmptyHistory(MatchError):  # noqa: N818
    """Undo or redo requested with nothing to undo or redo."""


class CorruptSnapshot(MatchError):  # noqa: N818
    """A persisted snapshot is missing fields or holds out-of-range values."""

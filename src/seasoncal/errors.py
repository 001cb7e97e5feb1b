"""Error taxonomy for the season calendar engine."""


class SeasonCalendarError(Exception):
    """Base class for fatal generation errors.

    Carries a list of human-readable messages so callers can surface every
    problem at once instead of only the first one.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InvalidConfiguration(SeasonCalendarError):
    """Too few teams, a bad date range, or no usable fields/timeslots."""


class StructuralViolation(SeasonCalendarError):
    """Generated pairings or placements broke a schedule invariant."""


class PersistenceFailure(SeasonCalendarError):
    """The schedule store failed while saving a generated schedule."""

from __future__ import annotations


class RaceWeekendError(Exception):
    """Base class for errors raised while deriving race weekend entry lists."""


class FilterError(RaceWeekendError):
    """Aborts a single parent -> child filter invocation."""


class ResultFileError(FilterError):
    """An external results file could not be read or parsed."""


class TyreLockError(RaceWeekendError):
    pass


class TyreNotFoundError(TyreLockError):
    pass

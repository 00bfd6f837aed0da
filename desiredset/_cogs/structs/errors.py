"""
Errors of the reconciliation and their accumulation.

The reconciliation does not stop on the first failure. Instead, every failure
is reported into an :class:`ErrorSink`, and the remaining objects & kinds are
still attempted. The caller inspects the aggregate after the whole batch.

The low-level API errors are in :mod:`desiredset._cogs.clients.errors`;
they are chained as the causes of the errors here when wrapped.
"""
from typing import Collection, Iterator, List, Optional


class ReconciliationError(Exception):
    """ The base for all the errors of the reconciliation. """


class ResourceLookupError(ReconciliationError):
    """ No resource (or client) can be resolved for a kind. """


class NoCacheError(ResourceLookupError):
    """ Strict caching is required, but no cache is available for a kind. """


class ScopeError(ReconciliationError):
    """ A cluster-scoped kind is processed while restricted to namespaced ones. """


class ListingError(ReconciliationError):
    """ Listing of the existing objects has failed, fully or partially. """


class ReplaceWaitError(ReconciliationError):
    """
    A transient condition: the object is deleted to be replaced.

    The object is recreated on one of the next reconciliations,
    when the deletion is over. It is not a failure per se.
    """


class AggregatedError(ReconciliationError):
    """ Several errors reported as one, e.g. after a batch of operations. """

    def __init__(self, errors: Collection[BaseException]) -> None:
        self.errors: List[BaseException] = list(errors)
        super().__init__('; '.join(str(error) for error in self.errors))

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self.errors)

    def __len__(self) -> int:
        return len(self.errors)


def aggregate(errors: Collection[BaseException]) -> Optional[AggregatedError]:
    """ Combine the errors into one, or ``None`` if there are no errors. """
    return AggregatedError(errors) if errors else None


class ErrorSink:
    """
    An accumulator of errors, one at a time. It never raises on its own.
    """

    def __init__(self) -> None:
        super().__init__()
        self._errors: List[BaseException] = []

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}: {self._errors!r}>'

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[BaseException]:
        return iter(self._errors)

    def add(self, error: BaseException) -> None:
        self._errors.append(error)

    def aggregate(self) -> Optional[AggregatedError]:
        return aggregate(self._errors)

    def raise_if_any(self) -> None:
        error = self.aggregate()
        if error is not None:
            raise error

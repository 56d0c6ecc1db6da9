"""
Unified hierarchy of error types. These inherit from standard errors like
ValueError and LookupError but are more fine-grained.
"""

from typing import Tuple, Type


class DeskboardError(ValueError):
    """Base class for deskboard errors."""

    pass


class UnexpectedError(DeskboardError):
    """For unexpected errors or runtime check failures."""

    pass


class SelfExplanatoryError(DeskboardError):
    """Common errors that arise from 'normal' problems that are largely self-explanatory,
    i.e., no stack trace should be necessary when reporting to the user."""

    pass


class InvalidInput(SelfExplanatoryError):
    """Raised when an intent carries invalid arguments."""

    pass


class MissingEntity(InvalidInput, LookupError):
    """Raised when a tab, section, item or bookmark id doesn't exist in the document."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"No such {kind}: {entity_id!r}")
        self.kind = kind
        self.entity_id = entity_id


class InvalidOperation(InvalidInput):
    """Raised when an operation can't be performed on the current document."""

    pass


class LockedEntity(InvalidOperation):
    """Raised when a locked tab or section would be structurally changed."""

    pass


class InvalidTransfer(InvalidOperation):
    """Raised when an item can't be relocated to the requested destination."""

    pass


class SelfTransfer(InvalidTransfer):
    """Raised when an item or section is dropped onto its own location."""

    pass


class LockedDestination(InvalidTransfer):
    """Raised when the destination section of a transfer is locked."""

    pass


class StoreError(DeskboardError):
    """Errors talking to the remote document store."""

    pass


class LoadError(StoreError):
    """The initial fetch or seed of the workspace failed. Fatal for the session."""

    pass


class SaveError(StoreError):
    """A debounced save failed. Not fatal; local state is kept."""

    pass


NONFATAL_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    SelfExplanatoryError,
    SaveError,
    FileNotFoundError,
    IOError,
)
"""Exceptions that are not fatal and usually don't merit a full stack trace."""


def is_fatal(exception: Exception) -> bool:
    for e in NONFATAL_EXCEPTIONS:
        if isinstance(exception, e):
            return False
    return True


## Tests


def test_error_hierarchy():
    assert isinstance(LockedDestination("x"), InvalidTransfer)
    assert isinstance(MissingEntity("tab", "t1"), LookupError)
    assert str(MissingEntity("tab", "t1")) == "No such tab: 't1'"
    assert not is_fatal(SelfTransfer("same place"))
    assert not is_fatal(SaveError("offline"))
    assert is_fatal(LoadError("no store"))
    assert is_fatal(UnexpectedError("bug"))

"""Exception hierarchy for the tptree call-tree viewer.

All tptree-specific exceptions inherit from :class:`TraceError` so that
callers can catch a single base class when they do not care about the
specific failure mode.

Irregularities inside a well-formed document (a ``return`` with no open
call, a ``call`` that never returns) are not errors: traces are often
captured mid-execution, and reconstruction recovers from them silently.
"""


class TraceError(Exception):
    """Base exception for all tptree operations."""


class TraceParseError(TraceError):
    """Raised when input cannot be parsed into a trace document.

    This covers both text that is not valid JSON and JSON whose shape is
    neither the ``{version, timestamp, events}`` envelope nor a bare
    array of events.  The underlying parser message is kept in
    :attr:`detail` so it can be shown to the user verbatim.
    """

    def __init__(self, message: str, *, detail: str = "") -> None:
        super().__init__(message)
        self.detail = detail or message


class TraceNotFoundError(TraceError):
    """Raised when the requested trace file does not exist or cannot be read."""


class SelectionError(TraceError):
    """Raised when a node id is looked up strictly and is not in the forest.

    Interactive selection never raises this: a selected id that is not
    currently visible simply resolves to "no selection".
    """

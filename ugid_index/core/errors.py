"""Exception hierarchy for ugid_index."""


class UgidIndexError(Exception):
    """Base class for all errors raised by ugid_index."""


class InvalidExpressionError(UgidIndexError, ValueError):
    """A uid/gid range expression could not be parsed."""

    def __init__(self, expression: str, term: str | None = None):
        self.expression = expression
        self.term = term
        if term is None or term == expression:
            message = f"Invalid range expression '{expression}'"
        else:
            message = f"Invalid term '{term}' in range expression '{expression}'"
        super().__init__(message)


class CorruptIndexError(UgidIndexError):
    """An index file is missing, unreadable or malformed."""


class UnknownCommandError(UgidIndexError):
    """A query token does not name a known command."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown command '{token}'")


class EmptyStackError(UgidIndexError):
    """A filter command was given without a preceding selection."""


class EmbeddedNewlineError(UgidIndexError):
    """A path destined for line-based output contains a line feed."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Path contains an embedded newline: {path!r} (use print0 instead)"
        )


class CommandSyntaxError(UgidIndexError):
    """A known query command was given malformed arguments."""

    def __init__(self, token: str, reason: str):
        self.token = token
        super().__init__(f"Invalid command '{token}': {reason}")

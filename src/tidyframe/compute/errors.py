"""Errors raised while executing a query plan.

Every transformation either succeeds producing a new batch of data
or fails with one of the errors defined here. Nodes never recover
from them, the caller decides if the whole analysis has to stop.

Each error carries the identifier of what caused it
(the column name, the expression or the aggregation)
so that a report built on top of tidyframe can point the
user to the offending part of the query.
"""


class TidyframeError(Exception):
    """Base class for all the errors raised by tidyframe."""


class ColumnNotFound(TidyframeError):
    """A column name or selector matched no column."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = available
        message = f"Column not found: {name}"
        if available is not None:
            message += f" (available columns: {', '.join(available)})"
        super().__init__(message)


class DuplicateColumn(TidyframeError):
    """An operation would produce two columns with the same name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Duplicate column: {name}")


class TypeMismatch(TidyframeError):
    """An expression combines values of incompatible types."""

    def __init__(self, expression: str, reason: str = "") -> None:
        self.expression = expression
        self.reason = reason
        message = f"Type mismatch in {expression}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class AggregateOnEmptyGroup(TidyframeError):
    """An aggregation that needs at least one value got none."""

    def __init__(self, aggregation: str) -> None:
        self.aggregation = aggregation
        super().__init__(f"Cannot compute {aggregation} over zero rows")

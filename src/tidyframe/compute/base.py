"""Base classes and interfaces for the Compute Engine

This module defines the base components that are
necessary to represent a query plan and execute it.
"""

import abc
from typing import Any, Iterator

import pyarrow as pa

from .errors import ColumnNotFound


class QueryPlanNode(abc.ABC):
    """A node of a query execution plan.

    The Query plan is represented as a tree
    of nodes. Each node is a step in the execution
    and all previous steps are children of the
    last one.

    For example a simple plan might involve
    loading data and filtering it::

        LoadDataNode -> FilterDataNode(filter)

    That would be a plan where the last step
    is filtering, and the LoadDataNode is a child
    of the filter node.

    Each Node accepts :class:`pyarrow.RecordBatch`
    data as its input and emits a new
    :class:`pyarrow.RecordBatch` as its output.
    Batches are immutable, so a node never modifies
    the data it receives, it always emits new batches.
    This is what makes every :class:`tidyframe.dataframe.Dataframe`
    a value that can be shared freely.

    For example a simple node that takes data
    and just forwards it as is after printing
    its content can be implemented as::

        class DebugDataNode(QueryPlanNode):
            def __init__(self, child):
                self.child = child

            def batches(self):
                for b in self.child.batches():
                    print(b)
                    yield b

            def __str__(self):
                return f"DebugDataNode()"
    """

    RecordBatchesGenerator = Iterator[pa.RecordBatch]

    @abc.abstractmethod
    def batches(self) -> RecordBatchesGenerator:
        """Emits the batches for the next node.

        Each QueryPlan node is expected to be able to
        generate data that has to be provided to the next
        node in the plan.

        Nodes must emit at least one batch, even when
        it has no rows, so that the following nodes
        always know the schema of the data.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the node."""
        ...

    def collect_batch(self) -> pa.RecordBatch:
        """Consume all the batches and merge them in a single one.

        Operations like sorting, grouping and deduplication
        need to see all the rows at once, so they use this
        to load the whole output of their child in memory.
        """
        return concat_batches(list(self.batches()))


def concat_batches(batches: list[pa.RecordBatch]) -> pa.RecordBatch:
    """Combine multiple batches sharing the same schema in a single one.

    Converting batches to a table is a zero-copy operation,
    the copy only happens when the chunks are combined.
    """
    if not batches:
        raise ValueError("Unable to combine batches, no batch was provided")
    if len(batches) == 1:
        return batches[0]

    table = pa.Table.from_batches(batches).combine_chunks()
    if table.num_rows == 0:
        return batches[0]
    return table.to_batches()[0]


class Expression(abc.ABC):
    """Expression to apply to a RecordBatch.

    Expressions are some form of operation that
    has to be applied to the data of a :class:`pyarrow.RecordBatch`
    to create new data.

    Typical example of expressions are: A + B
    which is expected to sum column A of the RecordBatch
    to column B of the RecordBatch and return the result.

    As our engine is Column Major, applying an expression
    usually results in a new column, thus in a
    :class:`pyarrow.Array` that contains the data
    for that column. Aggregations are the exception,
    they reduce the whole column to a :class:`pyarrow.Scalar`.

    Expressions support the Python operators, so that
    ``col("a") + col("b") > 3`` builds the same tree as
    nesting :class:`tidyframe.compute.FunctionCallExpression` by hand.
    """

    @abc.abstractmethod
    def apply(self, batch: pa.RecordBatch) -> pa.Array | pa.Scalar:
        """Apply the expression to a RecordBatch.

        Expression classes must implement this method
        to dictate what will happen when an expression
        is applied.
        """
        ...

    @abc.abstractmethod
    def __str__(self) -> str:
        """Human readable representation of the expression."""
        ...

    def __repr__(self) -> str:
        return str(self)

    def _call(self, func: str, *args: Any) -> "Expression":
        from . import expressions

        return expressions.FunctionCallExpression(getattr(expressions, func), *args)

    def __add__(self, other: Any) -> "Expression":
        return self._call("add", self, other)

    def __radd__(self, other: Any) -> "Expression":
        return self._call("add", other, self)

    def __sub__(self, other: Any) -> "Expression":
        return self._call("subtract", self, other)

    def __rsub__(self, other: Any) -> "Expression":
        return self._call("subtract", other, self)

    def __mul__(self, other: Any) -> "Expression":
        return self._call("multiply", self, other)

    def __rmul__(self, other: Any) -> "Expression":
        return self._call("multiply", other, self)

    def __truediv__(self, other: Any) -> "Expression":
        return self._call("true_divide", self, other)

    def __rtruediv__(self, other: Any) -> "Expression":
        return self._call("true_divide", other, self)

    def __neg__(self) -> "Expression":
        return self._call("negate", self)

    def __gt__(self, other: Any) -> "Expression":
        return self._call("greater", self, other)

    def __ge__(self, other: Any) -> "Expression":
        return self._call("greater_equal", self, other)

    def __lt__(self, other: Any) -> "Expression":
        return self._call("less", self, other)

    def __le__(self, other: Any) -> "Expression":
        return self._call("less_equal", self, other)

    def __eq__(self, other: Any) -> "Expression":  # type: ignore[override]
        return self._call("equal", self, other)

    def __ne__(self, other: Any) -> "Expression":  # type: ignore[override]
        return self._call("not_equal", self, other)

    def __and__(self, other: Any) -> "Expression":
        return self._call("and_kleene", self, other)

    def __or__(self, other: Any) -> "Expression":
        return self._call("or_kleene", self, other)

    def __invert__(self) -> "Expression":
        return self._call("invert", self)

    __hash__ = object.__hash__

    def is_in(self, values: list[Any]) -> "Expression":
        """Check if the values are part of the provided set."""
        return self._call("is_in", self, list(values))

    def between(self, lower: Any, upper: Any) -> "Expression":
        """Check if the values are within lower and upper, both inclusive."""
        return (self >= lower) & (self <= upper)


class ColumnRef(Expression):
    """References a column in a record batch.

    When another expression or the engine need
    to operate on a specific column, we will
    need a way to reference that column and its data.

    This expression is aware of the column and when
    applied to a record batch returns the data for
    that column.
    """

    def __init__(self, name: str) -> None:
        """
        :param name: The name of the column being referenced.
        """
        self.name = name

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Get the data for the column."""
        index = batch.schema.get_field_index(self.name)
        if index < 0:
            raise ColumnNotFound(self.name, batch.schema.names)
        return batch.column(index)

    def __str__(self) -> str:
        return f"ColumnRef({self.name})"


class Literal(Expression):
    """A constant value.

    Applying a literal returns the same :class:`pyarrow.Scalar`
    for any batch, compute functions will broadcast it
    to the length of the other arguments.
    """

    def __init__(self, value: Any) -> None:
        """
        :param value: The python value of the constant.
        """
        self.value = value

    def apply(self, batch: pa.RecordBatch) -> pa.Scalar:
        """Get the value as an arrow scalar."""
        return pa.scalar(self.value)

    def __str__(self) -> str:
        return f"Literal({self.value!r})"


col = ColumnRef
lit = Literal

"""Expressions executed by compute engine nodes.

The Compute Engine will sometimes need to filter data
or emit new data. This will be performed by nodes that
need to know how the data must be filtered or emitted.

Filters will need a ``predicate``, so an expression that
returns ``true`` or ``false`` for each row that has to be
filtered.

Mutations will need an expression that computes the rows
for the new column, for example ``A + B``.

Derivations that depend on multiple conditions,
like labeling a row as ``"High"``, ``"Mid"`` or ``"Low"``
depending on its amount, are expressed with :func:`case_when`.

This module also exposes the functions the Python operators
of :class:`tidyframe.compute.base.Expression` map to.
Most of them are plain :mod:`pyarrow.compute` kernels,
division is the exception as it must never truncate integers.
"""

from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .. import utils
from .base import Expression
from .errors import TypeMismatch

add = pc.add
subtract = pc.subtract
multiply = pc.multiply
negate = pc.negate
greater = pc.greater
greater_equal = pc.greater_equal
less = pc.less
less_equal = pc.less_equal
equal = pc.equal
not_equal = pc.not_equal
and_kleene = pc.and_kleene
or_kleene = pc.or_kleene
invert = pc.invert


def true_divide(dividend: Any, divisor: Any) -> Any:
    """Divide always producing floating point results.

    :func:`pyarrow.compute.divide` performs an integer
    division when both arguments are integers,
    so integers are promoted to float64 first.
    """
    return pc.divide(_to_floating(dividend), _to_floating(divisor))


def _to_floating(value: Any) -> Any:
    if isinstance(value, (pa.Array, pa.ChunkedArray, pa.Scalar)):
        if pa.types.is_integer(value.type):
            return value.cast(pa.float64())
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


def is_in(values: Any, value_set: list[Any]) -> Any:
    """Check which of the values are members of value_set."""
    return pc.is_in(values, value_set=pa.array(value_set))


def apply_expression_if_needed(batch: pa.RecordBatch, o: Any) -> Any:
    """Invoke Apply on expressions when needed

    If the provided object is an Expression,
    it will be applied to the target batch.

    Otherwise it will treat it as if it's
    already the result of an expression
    or a literal value.

    This allows us to apply all arguments
    we receive without having to care if
    they are the data we need or if they
    are the expression resulting in that data.
    """
    if isinstance(o, Expression):
        o = o.apply(batch)
    return o


def as_column(value: Any, length: int) -> pa.Array:
    """Turn the result of an expression into a column of ``length`` rows.

    Expressions can return arrays, but also scalars
    (literals and aggregations), scalars are repeated
    for every row.
    """
    if isinstance(value, pa.ChunkedArray):
        return value.combine_chunks()
    if isinstance(value, pa.Array):
        return value
    if not isinstance(value, pa.Scalar):
        value = pa.scalar(value)
    return pa.repeat(value, length)


class FunctionCallExpression(Expression):
    """Call a compute function on its arguments.

    Given a compute function, and a set of arguments
    (other expressions, literals or data), execute
    the function on the provided arguments and return
    the resulting data.

    For example to sum two columns this would be used as::

        FunctionCallExpression(pyarrow.compute.add, ColumnRef("A"), ColumnRef("B"))

    which is the same expression that ``col("A") + col("B")`` builds.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import col
    >>> data = pa.record_batch({"price": [10, 20], "quantity": [3, 2]})
    >>> (col("price") * col("quantity")).apply(data).to_pylist()
    [30, 40]
    """

    def __init__(self, func: callable, *args: Any) -> None:
        """
        :param func: The function accepting the arguments.
        :param *args: The arguments for the function.
        """
        self.func = func
        self.args = args

    def __str__(self) -> str:
        func_qualname = utils.inspect.get_qualname(self.func)
        return f"{func_qualname}({','.join(map(str, self.args))})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Invoke the function resolving all arguments on the recordbatch.

        When the function arguments are expressions themselves,
        this will apply the expressions on the provided recordbatch
        and the resulting data will be used as the arguments for the
        function.

        Compute functions that have no kernel for the
        types of the arguments are reported as :class:`TypeMismatch`.
        """
        args = tuple(apply_expression_if_needed(batch, arg) for arg in self.args)
        try:
            return self.func(*args)
        except (pa.ArrowNotImplementedError, pa.ArrowTypeError) as e:
            raise TypeMismatch(str(self), str(e)) from e


class CaseWhenExpression(Expression):
    """Pick a value for each row depending on the first matching condition.

    The cases are a list of ``(condition, value)`` pairs,
    for each row the conditions are checked in order
    and the value of the first true condition is emitted.
    When no condition is true the ``default`` is emitted.

    Conditions and values are evaluated for all rows at once,
    the result for a row never depends on other rows.

    >>> import pyarrow as pa
    >>> from tidyframe.compute import col
    >>> data = pa.record_batch({"amount": [100, 50, 200]})
    >>> label = CaseWhenExpression(
    ...     [(col("amount") > 150, "High"), (col("amount") > 75, "Mid")],
    ...     default="Low",
    ... )
    >>> label.apply(data).to_pylist()
    ['Mid', 'Low', 'High']
    """

    def __init__(
        self, cases: list[tuple[Expression, Any]], default: Any = None
    ) -> None:
        """
        :param cases: The ``(condition, value)`` pairs in evaluation order.
        :param default: The value for rows where no condition matched,
                        ``None`` means emit null.
        """
        if not cases:
            raise ValueError("case_when requires at least one condition")
        self.cases = list(cases)
        self.default = default

    def __str__(self) -> str:
        cases = ", ".join(f"{cond} -> {value}" for cond, value in self.cases)
        return f"CaseWhenExpression({cases}, default={self.default})"

    def apply(self, batch: pa.RecordBatch) -> pa.Array:
        """Evaluate all conditions and values and combine them row by row."""
        length = batch.num_rows
        conditions = []
        for condition, _ in self.cases:
            mask = as_column(apply_expression_if_needed(batch, condition), length)
            if not pa.types.is_boolean(mask.type):
                raise TypeMismatch(
                    str(self), f"condition {condition} is {mask.type}, not boolean"
                )
            conditions.append(mask)

        values = [
            as_column(apply_expression_if_needed(batch, value), length)
            for _, value in self.cases
        ]
        if self.default is not None:
            values.append(
                as_column(apply_expression_if_needed(batch, self.default), length)
            )

        target_type = common_type([v.type for v in values], str(self))
        values = [v.cast(target_type) for v in values]

        cond = pa.StructArray.from_arrays(
            conditions, names=[f"cond{idx}" for idx in range(len(conditions))]
        )
        return pc.case_when(cond, *values)


def common_type(types: list[pa.DataType], expression: str) -> pa.DataType:
    """Find the type all the provided types can be coerced to.

    * Null values can be coerced to any type.
    * Integers and floats are coerced to float64,
      different integer types to int64.
    * String and large string are coerced to large string.

    Any other combination is reported as a :class:`TypeMismatch`.
    """
    candidates = [t for t in types if not pa.types.is_null(t)]
    if not candidates:
        return pa.null()

    first = candidates[0]
    if all(t == first for t in candidates):
        return first
    if all(pa.types.is_integer(t) or pa.types.is_floating(t) for t in candidates):
        if any(pa.types.is_floating(t) for t in candidates):
            return pa.float64()
        return pa.int64()
    if all(pa.types.is_string(t) or pa.types.is_large_string(t) for t in candidates):
        return pa.large_string()

    raise TypeMismatch(
        expression,
        f"values of types {', '.join(sorted(set(map(str, candidates))))} "
        "cannot be combined",
    )


def case_when(*cases: tuple[Expression, Any], default: Any = None) -> Expression:
    """Build a :class:`CaseWhenExpression` from the ``(condition, value)`` pairs."""
    return CaseWhenExpression(list(cases), default=default)


__all__ = (
    "FunctionCallExpression",
    "CaseWhenExpression",
    "case_when",
    "as_column",
    "common_type",
)

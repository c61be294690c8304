"""Apply the same functions to multiple columns.

It is common to need the same transformation on many columns,
like rounding all the prices or computing the mean of every
numeric column. :class:`Across` expands a selector and
a set of functions into one expression for each
``(column, function)`` pair::

    Across(starts_with("price_"), {"mean": MeanAggregation, "sd": StdDevAggregation})

applied to ``price_a`` and ``price_b`` leads to the
``price_a_mean``, ``price_a_sd``, ``price_b_mean`` and ``price_b_sd`` columns.
When a single function is provided, the result keeps
the name of the column, so it replaces it.

Functions can be:

* Expression classes, like aggregations, which are built passing
  the column name (``MeanAggregation`` leads to ``MeanAggregation("price_a")``).
  Partials of them are accepted too, for example
  ``functools.partial(QuantileAggregation, q=0.9)``.
* Any other callable accepting and returning arrow data,
  like :func:`pyarrow.compute.round`, which is applied to the column values.

On grouped data the grouping columns are never picked,
so ``Across(everything(), CountDistinctAggregation)`` summarises
every column except the keys.
"""

import functools
from typing import Any, Callable

import pyarrow as pa

from .. import utils
from .base import ColumnRef, Expression
from .expressions import FunctionCallExpression
from .selectors import Selector, as_selector


class Across:
    """Expand a column selector and a set of functions into expressions.

    >>> import pyarrow as pa
    >>> import pyarrow.compute as pc
    >>> from tidyframe.compute import starts_with
    >>> schema = pa.schema([("price_a", pa.float64()), ("price_b", pa.float64()), ("qty", pa.int64())])
    >>> list(Across(starts_with("price"), [pc.round, pc.ceil]).expand(schema))
    ['price_a_round', 'price_a_ceil', 'price_b_round', 'price_b_ceil']
    """

    def __init__(
        self,
        selector: Selector | str,
        functions: Callable | list[Callable] | dict[str, Callable],
    ) -> None:
        """
        :param selector: Which columns the functions should be applied to.
        :param functions: A function, a list of functions or a dictionary
                          ``{name: function}`` where the name is used as the
                          suffix of the generated columns.
        """
        self.selector = as_selector(selector)
        if isinstance(functions, dict):
            self.functions = list(functions.items())
        elif isinstance(functions, (list, tuple)):
            self.functions = [(utils.inspect.get_shortname(f), f) for f in functions]
        else:
            self.functions = [(utils.inspect.get_shortname(functions), functions)]
        if not self.functions:
            raise ValueError("across requires at least one function")

    def __str__(self) -> str:
        return f"Across({self.selector}, {[name for name, _ in self.functions]})"

    __repr__ = __str__

    def expand(
        self, schema: pa.Schema, exclude: list[str] | None = None
    ) -> dict[str, Expression]:
        """Build the expressions for the columns of the provided schema.

        :param exclude: Columns never picked even when the selector
                        matches them, the grouping keys of grouped
                        operations are passed here.
        """
        excluded = set(exclude or [])
        single = len(self.functions) == 1
        expressions = {}
        for column in self.selector.resolve(schema):
            if column in excluded:
                continue
            for suffix, func in self.functions:
                name = column if single else f"{column}_{suffix}"
                expressions[name] = make_expression(func, column)
        return expressions


def make_expression(func: Callable, column: str) -> Expression:
    """Build the expression applying ``func`` to ``column``."""
    target = func.func if isinstance(func, functools.partial) else func
    if isinstance(target, type) and issubclass(target, Expression):
        return func(column)
    return FunctionCallExpression(func, ColumnRef(column))


def expand_entries(
    entries: list[Any], schema: pa.Schema, exclude: list[str] | None = None
) -> dict[str, Expression]:
    """Turn a list of ``(name, expression)`` pairs and :class:`Across` into a dict.

    Later entries replace earlier ones with the same name.
    Columns in ``exclude`` are skipped by :class:`Across` entries only,
    named entries are kept as they are.
    """
    expressions = {}
    for entry in entries:
        if isinstance(entry, Across):
            expressions.update(entry.expand(schema, exclude=exclude))
        else:
            name, expression = entry
            expressions[name] = expression
    return expressions


def as_entries(projections: Any) -> list[Any]:
    """Normalize a dict of expressions or a list of entries to a list of entries."""
    if projections is None:
        return []
    if isinstance(projections, dict):
        return list(projections.items())
    return list(projections)


across = Across

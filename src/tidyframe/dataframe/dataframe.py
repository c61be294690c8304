"""The Dataframe object itself."""
import functools
import logging
import operator
from typing import Any, Self

import pyarrow as pa

from ..compute import (
  AggregateNode,
  CountAggregation,
  CSVDataSource,
  DistinctNode,
  FilterNode,
  ProjectNode,
  PyArrowTableDataSource,
  RenameNode,
  SortNode,
)
from ..compute.across import Across
from ..compute.base import QueryPlanNode
from ..compute.expressions import Expression
from ..compute.selectors import Selector

logger = logging.getLogger(__name__)


class SortKey:
  """A column to sort by and the direction of the sort."""
  def __init__(self, name: str, descending: bool = False) -> None:
    self.name = name
    self.descending = descending

  def __str__(self) -> str:
    return f"{'desc' if self.descending else 'asc'}({self.name})"

  __repr__ = __str__


def desc(name: str) -> SortKey:
  """Sort by ``name`` in descending order."""
  return SortKey(name, descending=True)


def _entries(across: tuple[Across, ...], named: dict[str, Any]) -> list:
  for entry in across:
    if not isinstance(entry, Across):
      raise TypeError(f"Positional arguments must be Across, got {entry!r}")
  return list(across) + list(named.items())


class Dataframe:
  """Data structure that handles data in rows and columns.

  The Dataframe object allows to represent in-memory data
  and perform transformations over it.

  The tidyframe dataframe object is lazy, which means that
  any transformation or analysis will be applied only when the
  ``.collect()`` method will be invoked and no data is kept
  in memory until that moment (unless it already was).

  A Dataframe is never modified, every transformation
  returns a new Dataframe, so the same Dataframe can be
  the starting point of multiple independent analyses.

  >>> from tidyframe.compute import col
  >>> df = Dataframe.from_pydict({"department": ["Sales", "IT", "Sales"], "amount": [100, 50, 200]})
  >>> df.filter(col("amount") > 75).to_pydict()
  {'department': ['Sales', 'Sales'], 'amount': [100, 200]}
  """
  def __init__(self, node_or_table: QueryPlanNode|pa.Table|pa.RecordBatch) -> None:
    """
    :param node_or_table: A compute engine node expected to emit
                          the data for the dataframe or a `pyarrow.Table`.
    """
    if isinstance(node_or_table, (pa.Table, pa.RecordBatch)):
      node_or_table = PyArrowTableDataSource(node_or_table)

    if not isinstance(node_or_table, QueryPlanNode):
      raise ValueError("Invalid input, expected a QueryPlanNode or a PyArrow Table")

    self.node = node_or_table

  def __str__(self) -> str:
    return f"Dataframe({self.node})"

  __repr__ = __str__

  @classmethod
  def from_pydict(cls, data: dict[str, list[Any]]) -> Self:
    """Create a Dataframe from a dictionary of columns.

    :param data: The ``{column_name: values}`` of the table,
                 all the columns must have the same length.
    """
    return cls(pa.table(data))

  @classmethod
  def open_csv(cls, filename: str, block_size: int | None = None) -> Self:
    """Open a CSV file and create a Dataframe out of its data.

    :param filename: The path to a local CSV file.
    :param block_size: The size of the blocks the file is read in.
    """
    return cls(CSVDataSource(filename, block_size=block_size))

  def filter(self, *predicates: Expression) -> Self:
    """Apply a filter to the data and return a new Dataframe.

    The returned dataframe will only contain the data that
    matches the filter predicate. When multiple predicates
    are provided, rows must match all of them.

    :param predicates: The expressions representing the predicate.
                       for example `col("A") > col("B")`.
    """
    return self.__class__(FilterNode(_all_of(predicates), self.node))

  def select(self, *columns: str|Selector) -> Self:
    """Keep only the provided columns, in the provided order.

    Columns can be names or selectors, like ``between("a", "c")``,
    ``starts_with("price_")`` or ``~by_name("id")`` to exclude a column.
    """
    return self.__class__(ProjectNode(list(columns), None, self.node))

  def mutate(self, *across: Across, **expressions: Any) -> Self:
    """Add new columns or replace existing ones.

    Each keyword is the name of the column and its value
    the expression computing it, expressions are computed
    in order and can refer to columns computed before them.
    :class:`tidyframe.compute.Across` can be passed positionally,
    and are computed before the keyword expressions.
    """
    return self.__class__(ProjectNode(None, _entries(across, expressions), self.node))

  def summarise(self, *across: Across, **aggregations: Expression) -> Self:
    """Reduce all the rows to a single row of aggregated values."""
    return self.__class__(AggregateNode([], _entries(across, aggregations), self.node))

  summarize = summarise

  def group_by(self, *keys: str) -> "GroupedDataframe":
    """Group the rows by the values of the ``keys`` columns.

    The returned :class:`GroupedDataframe` computes
    mutations, filters and summaries for each group.
    """
    return GroupedDataframe(self, list(keys))

  def ungroup(self) -> Self:
    """A Dataframe is never grouped, this returns the same data."""
    return self.__class__(self.node)

  def arrange(self, *keys: str|SortKey) -> Self:
    """Sort rows by the provided columns.

    Columns are sorted ascending, use :func:`desc` for
    descending order. Rows that are equal on all the
    keys preserve their order.
    """
    keys = [key if isinstance(key, SortKey) else SortKey(key) for key in keys]
    return self.__class__(SortNode(
      [key.name for key in keys], [key.descending for key in keys], self.node
    ))

  def rename(self, mapping: dict[str, str] | None = None, **renames: str) -> Self:
    """Rename columns.

    Accepts both a ``{old_name: new_name}`` dictionary
    and keywords in the form ``new_name="old_name"``.
    """
    mapping = dict(mapping or {})
    for new_name, old_name in renames.items():
      mapping[old_name] = new_name
    return self.__class__(RenameNode(mapping, self.node))

  def distinct(self, *columns: str, keep_all: bool = False) -> Self:
    """Remove duplicated rows.

    :param columns: The columns to compare, all of them when omitted.
    :param keep_all: Keep all the columns of the first row
                     for each distinct value of ``columns``.
    """
    return self.__class__(DistinctNode(list(columns), self.node, keep_all=keep_all))

  def count(self, *columns: str, sort: bool = False, name: str = "n") -> Self:
    """Count the rows for each distinct value of ``columns``.

    :param sort: Put the most frequent values first.
    :param name: The name of the column with the counts.
    """
    node = AggregateNode(list(columns), {name: CountAggregation()}, self.node)
    if sort:
      node = SortNode([name], [True], node)
    return self.__class__(node)

  def collect(self) -> Self:
    """Collect all data of the dataframe in memory.

    Returns a new Dataframe that has all data from the
    previous dataframe eagerly loaded in memory.
    """
    return self.__class__(self.to_arrow())

  def to_arrow(self) -> pa.Table:
    """Collect all the data and return a pyarrow.Table"""
    logger.debug("Executing %s", self.node)
    return pa.Table.from_batches(list(self.node.batches()))

  def to_pydict(self) -> dict[str, list[Any]]:
    """Collect all the data and return it as ``{column_name: values}``"""
    return self.to_arrow().to_pydict()


class GroupedDataframe:
  """A Dataframe whose rows are grouped by a set of key columns.

  Only the operations that behave differently on groups
  are available: ``filter`` keeps the grouping, while
  ``mutate``, ``summarise`` and ``count`` return a plain
  :class:`Dataframe`, so a grouping can never leak
  into later unrelated transformations.
  Use ``ungroup`` to get back the plain Dataframe.

  >>> from tidyframe.compute import SumAggregation
  >>> df = Dataframe.from_pydict({"department": ["Sales", "IT", "Sales"], "amount": [100, 50, 200]})
  >>> df.group_by("department").summarise(total=SumAggregation("amount")).to_pydict()
  {'department': ['Sales', 'IT'], 'total': [300, 50]}
  """
  def __init__(self, dataframe: Dataframe, keys: list[str]) -> None:
    """
    :param dataframe: The data to group.
    :param keys: The columns whose values identify the groups.
    """
    if not keys:
      raise ValueError("group_by requires at least one column")
    self.dataframe = dataframe
    self.keys = keys

  def __str__(self) -> str:
    return f"GroupedDataframe(keys={self.keys}, {self.dataframe})"

  __repr__ = __str__

  @property
  def node(self) -> QueryPlanNode:
    return self.dataframe.node

  def _wrap(self, node: QueryPlanNode) -> Dataframe:
    return self.dataframe.__class__(node)

  def group_by(self, *keys: str) -> "GroupedDataframe":
    """Replace the grouping with a new one."""
    return GroupedDataframe(self.dataframe, list(keys))

  def ungroup(self) -> Dataframe:
    """Drop the grouping."""
    return self.dataframe

  def filter(self, *predicates: Expression) -> "GroupedDataframe":
    """Filter rows evaluating the predicates within each group."""
    node = FilterNode(_all_of(predicates), self.node, keys=self.keys)
    return GroupedDataframe(self._wrap(node), self.keys)

  def mutate(self, *across: Across, **expressions: Any) -> Dataframe:
    """Compute new columns evaluating the expressions within each group."""
    return self._wrap(
      ProjectNode(None, _entries(across, expressions), self.node, keys=self.keys)
    )

  def summarise(self, *across: Across, **aggregations: Expression) -> Dataframe:
    """Reduce each group to a single row.

    The grouping columns are the first columns
    of the result, followed by the aggregations.
    Groups are in the order they first appear in the data.
    """
    return self._wrap(
      AggregateNode(self.keys, _entries(across, aggregations), self.node)
    )

  summarize = summarise

  def count(self, *columns: str, sort: bool = False, name: str = "n") -> Dataframe:
    """Count the rows of each group, optionally further split by ``columns``."""
    keys = self.keys + [c for c in columns if c not in self.keys]
    return self.dataframe.count(*keys, sort=sort, name=name)

  def to_arrow(self) -> pa.Table:
    """Collect all the data, the grouping does not affect the content."""
    return self.dataframe.to_arrow()

  def to_pydict(self) -> dict[str, list[Any]]:
    return self.dataframe.to_pydict()


def _all_of(predicates: tuple[Expression, ...]) -> Expression:
  if not predicates:
    raise ValueError("filter requires at least one predicate")
  return functools.reduce(operator.and_, predicates)

"""Partition rows in groups sharing the same key values.

Aggregations, grouped mutations, grouped filters, deduplication
and counting all need to know which rows share the same
values for a set of key columns.

Groups are always reported in the order in which their
key first appears in the data, so given::

    department, amount
    Sales, 100
    IT, 50
    Sales, 200

grouping by ``department`` leads to ``Sales -> [0, 2]``
and then ``IT -> [1]``.

Groups are transient, they are computed when a node executes
and never stored as part of the data.
"""

import logging
import math
from typing import Any

import pyarrow as pa
import pyarrow.compute as pc

from .errors import ColumnNotFound, TypeMismatch
from .expressions import apply_expression_if_needed, as_column

logger = logging.getLogger(__name__)

Group = tuple[tuple[Any, ...], pa.Array]


def check_columns(batch: pa.RecordBatch, names: list[str]) -> None:
    """Raise :class:`ColumnNotFound` for the first name missing in the batch."""
    for name in names:
        if batch.schema.get_field_index(name) < 0:
            raise ColumnNotFound(name, batch.schema.names)


def group_indices(batch: pa.RecordBatch, keys: list[str]) -> list[Group]:
    """Compute the rows belonging to each group.

    Returns a list of ``(key_values, row_indices)`` in
    first-occurrence order. ``row_indices`` is an
    array of the indices of the rows in the group, in their original order.

    >>> import pyarrow as pa
    >>> data = pa.record_batch({"department": ["Sales", "IT", "Sales"]})
    >>> [(key, rows.to_pylist()) for key, rows in group_indices(data, ["department"])]
    [(('Sales',), [0, 2]), (('IT',), [1])]
    """
    check_columns(batch, keys)
    if len(keys) == 1:
        groups = _single_key_groups(batch, keys[0])
    else:
        groups = _multi_key_groups(batch, keys)
    logger.debug("Grouped %d rows by %s into %d groups", batch.num_rows, keys, len(groups))
    return groups


def _single_key_groups(batch: pa.RecordBatch, key: str) -> list[Group]:
    """Group by a single column relying on dictionary encoding.

    Dictionary encoding the key gives us the unique values,
    in the order they are first found, and for each row
    the index of its value in the dictionary.
    Nulls are encoded too, so they form their own group.
    """
    key_column = pc.dictionary_encode(batch.column(key), null_encoding="encode")
    key_values = key_column.dictionary
    key_indices = key_column.indices

    groups = []
    for idx, keyval in enumerate(key_values):
        mask = pc.equal(key_indices, idx)
        groups.append(((keyval.as_py(),), pc.indices_nonzero(mask)))
    return groups


def _multi_key_groups(batch: pa.RecordBatch, keys: list[str]) -> list[Group]:
    """Group by multiple columns.

    Dictionary encoding is not supported for StructArray,
    so for multiple keys the rows are grouped in Python
    using a dictionary, which preserves insertion order.
    NaN never equals itself, so it is replaced by a marker
    in the dictionary keys to put all NaN in the same group,
    like dictionary encoding does for a single key.
    """
    rows: dict[tuple[Any, ...], tuple[tuple[Any, ...], list[int]]] = {}
    key_columns = [batch.column(k).to_pylist() for k in keys]
    for row_index, row_key in enumerate(zip(*key_columns)):
        lookup = tuple(_NAN if _is_nan(v) else v for v in row_key)
        rows.setdefault(lookup, (row_key, []))[1].append(row_index)
    return [
        (row_key, pa.array(indices, type=pa.uint64()))
        for row_key, indices in rows.values()
    ]


_NAN = object()


def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def first_rows(groups: list[Group]) -> pa.Array:
    """Indices of the first row of each group."""
    return pa.array([rows[0].as_py() for _, rows in groups], type=pa.uint64())


def apply_by_group(
    batch: pa.RecordBatch,
    keys: list[str],
    expression: Any,
) -> pa.Array:
    """Evaluate an expression on each group and reassemble the results.

    Each group is evaluated in isolation, so aggregations
    in the expression only see the rows of their own group.
    The per-group results are then put back in the original
    order of the rows.
    """
    groups = group_indices(batch, keys)
    if not groups:
        return as_column(apply_expression_if_needed(batch, expression), batch.num_rows)

    results = []
    for _, rows in groups:
        group_batch = batch.take(rows)
        value = apply_expression_if_needed(group_batch, expression)
        results.append(as_column(value, group_batch.num_rows))

    try:
        combined = pa.concat_arrays(results)
    except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
        raise TypeMismatch(
            str(expression),
            "groups produced values of different types",
        ) from e
    positions = pa.concat_arrays([rows.cast(pa.uint64()) for _, rows in groups])
    return combined.take(pc.sort_indices(positions))

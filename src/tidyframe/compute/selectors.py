"""Pick columns by name, position or pattern.

Selecting columns is frequently more convenient
when done by describing them instead of listing them.
For example all the columns whose name starts with ``price_``
or all the columns between ``month`` and ``amount``.

A selector is a value that, given the schema of the data,
resolves to the ordered list of the column names it picks.
Selectors are pure, they never look at the data itself,
only at the names and types of the columns.

Selectors can be combined:

* ``a | b`` picks the columns of ``a`` followed by the ones of ``b``.
* ``a & b`` picks the columns of ``a`` that are also in ``b``.
* ``a - b`` picks the columns of ``a`` that are not in ``b``.
* ``~a`` picks all the columns not in ``a``.

>>> import pyarrow as pa
>>> schema = pa.schema([("A", pa.int64()), ("B", pa.int64()), ("C", pa.string()), ("D", pa.string())])
>>> between("A", "C").resolve(schema)
['A', 'B', 'C']
>>> (~by_name("A")).resolve(schema)
['B', 'C', 'D']

A selector that picks no column is an error: it raises
:class:`tidyframe.compute.errors.ColumnNotFound`
identifying the selector. This holds for the ``&`` and ``-``
combinations too, so ``starts_with("A") - everything()`` raises as well.
"""

import abc
import re
from typing import Callable

import pyarrow as pa

from .errors import ColumnNotFound


class Selector(abc.ABC):
    """Resolves to a list of column names given a schema."""

    @abc.abstractmethod
    def resolve(self, schema: pa.Schema) -> list[str]:
        """Return the names of the selected columns, in order."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str: ...

    def __repr__(self) -> str:
        return str(self)

    def __or__(self, other: "Selector | str") -> "Selector":
        return Union(self, as_selector(other))

    def __and__(self, other: "Selector | str") -> "Selector":
        return Intersection(self, as_selector(other))

    def __sub__(self, other: "Selector | str") -> "Selector":
        return Difference(self, as_selector(other))

    def __invert__(self) -> "Selector":
        return Exclude(self)


class PatternSelector(Selector):
    """Base class for selectors that test each name individually."""

    def resolve(self, schema: pa.Schema) -> list[str]:
        names = [field.name for field in schema if self.matches(field)]
        if not names:
            raise ColumnNotFound(str(self), schema.names)
        return names

    @abc.abstractmethod
    def matches(self, field: pa.Field) -> bool: ...


class ByName(Selector):
    """Select columns by their exact name."""

    def __init__(self, *names: str) -> None:
        self.names = names

    def __str__(self) -> str:
        return f"by_name({', '.join(map(repr, self.names))})"

    def resolve(self, schema: pa.Schema) -> list[str]:
        for name in self.names:
            if schema.get_field_index(name) < 0:
                raise ColumnNotFound(name, schema.names)
        return list(dict.fromkeys(self.names))


class Between(Selector):
    """Select a contiguous range of columns, both ends included.

    The range depends on the order of the columns,
    when ``end`` comes before ``start`` the columns
    are picked in reverse order.
    """

    def __init__(self, start: str, end: str) -> None:
        self.start = start
        self.end = end

    def __str__(self) -> str:
        return f"between({self.start!r}, {self.end!r})"

    def resolve(self, schema: pa.Schema) -> list[str]:
        names = schema.names
        for name in (self.start, self.end):
            if name not in names:
                raise ColumnNotFound(name, names)
        first, last = names.index(self.start), names.index(self.end)
        if first <= last:
            return names[first : last + 1]
        return names[last : first + 1][::-1]


class StartsWith(PatternSelector):
    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def __str__(self) -> str:
        return f"starts_with({self.prefix!r})"

    def matches(self, field: pa.Field) -> bool:
        return field.name.startswith(self.prefix)


class EndsWith(PatternSelector):
    def __init__(self, suffix: str) -> None:
        self.suffix = suffix

    def __str__(self) -> str:
        return f"ends_with({self.suffix!r})"

    def matches(self, field: pa.Field) -> bool:
        return field.name.endswith(self.suffix)


class Contains(PatternSelector):
    def __init__(self, substring: str) -> None:
        self.substring = substring

    def __str__(self) -> str:
        return f"contains({self.substring!r})"

    def matches(self, field: pa.Field) -> bool:
        return self.substring in field.name


class Matches(PatternSelector):
    """Select the columns whose name matches a regular expression.

    The expression can match anywhere in the name,
    use ``^`` and ``$`` to anchor it.
    """

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self.regex = re.compile(pattern)

    def __str__(self) -> str:
        return f"matches({self.pattern!r})"

    def matches(self, field: pa.Field) -> bool:
        return self.regex.search(field.name) is not None


class Where(PatternSelector):
    """Select the columns whose type satisfies a predicate.

    The predicate receives the :class:`pyarrow.DataType`
    of the column, so the functions in :mod:`pyarrow.types`
    can be used directly::

        where(pyarrow.types.is_floating)
    """

    def __init__(self, predicate: Callable[[pa.DataType], bool]) -> None:
        self.predicate = predicate

    def __str__(self) -> str:
        return f"where({getattr(self.predicate, '__name__', self.predicate)})"

    def matches(self, field: pa.Field) -> bool:
        return bool(self.predicate(field.type))


class Everything(Selector):
    def __str__(self) -> str:
        return "everything()"

    def resolve(self, schema: pa.Schema) -> list[str]:
        return list(schema.names)


class Union(Selector):
    def __init__(self, left: Selector, right: Selector) -> None:
        self.left = left
        self.right = right

    def __str__(self) -> str:
        return f"({self.left} | {self.right})"

    def resolve(self, schema: pa.Schema) -> list[str]:
        return list(dict.fromkeys(self.left.resolve(schema) + self.right.resolve(schema)))


class Intersection(Selector):
    def __init__(self, left: Selector, right: Selector) -> None:
        self.left = left
        self.right = right

    def __str__(self) -> str:
        return f"({self.left} & {self.right})"

    def resolve(self, schema: pa.Schema) -> list[str]:
        right = set(self.right.resolve(schema))
        names = [name for name in self.left.resolve(schema) if name in right]
        if not names:
            raise ColumnNotFound(str(self), schema.names)
        return names


class Difference(Selector):
    def __init__(self, left: Selector, right: Selector) -> None:
        self.left = left
        self.right = right

    def __str__(self) -> str:
        return f"({self.left} - {self.right})"

    def resolve(self, schema: pa.Schema) -> list[str]:
        excluded = set(self.right.resolve(schema))
        names = [name for name in self.left.resolve(schema) if name not in excluded]
        if not names:
            raise ColumnNotFound(str(self), schema.names)
        return names


class Exclude(Selector):
    """Select all the columns not picked by another selector."""

    def __init__(self, selector: Selector) -> None:
        self.selector = selector

    def __str__(self) -> str:
        return f"~{self.selector}"

    def resolve(self, schema: pa.Schema) -> list[str]:
        excluded = set(self.selector.resolve(schema))
        return [name for name in schema.names if name not in excluded]


def as_selector(spec: Selector | str) -> Selector:
    """Convert a column name to a selector, selectors are returned as they are."""
    if isinstance(spec, Selector):
        return spec
    if isinstance(spec, str):
        return ByName(spec)
    raise TypeError(f"Expected a column name or a Selector, got {spec!r}")


def resolve_selection(specs: list[Selector | str], schema: pa.Schema) -> list[str]:
    """Resolve a list of column specs to the names of the columns to keep.

    Names and selectors are resolved in order, each one adding
    its columns after the ones already picked.
    Exclusions instead remove columns from what was picked so far,
    when the first spec is an exclusion it starts from all the columns,
    so that ``-A`` means every column except ``A``.

    >>> import pyarrow as pa
    >>> schema = pa.schema([("A", pa.int64()), ("B", pa.int64()), ("C", pa.int64())])
    >>> resolve_selection(["C", starts_with("A")], schema)
    ['C', 'A']
    >>> resolve_selection([exclude("A", "B")], schema)
    ['C']
    """
    selected: list[str] = []
    for idx, spec in enumerate(specs):
        spec = as_selector(spec)
        if isinstance(spec, Exclude):
            if idx == 0:
                selected = list(schema.names)
            removed = set(spec.selector.resolve(schema))
            selected = [name for name in selected if name not in removed]
        else:
            selected.extend(n for n in spec.resolve(schema) if n not in selected)
    return selected


by_name = ByName
between = Between
starts_with = StartsWith
ends_with = EndsWith
contains = Contains
matches = Matches
where = Where
everything = Everything


def exclude(*specs: Selector | str) -> Selector:
    """Select all the columns except the provided ones."""
    selector = as_selector(specs[0])
    for spec in specs[1:]:
        selector = selector | as_selector(spec)
    return Exclude(selector)


def is_numeric(dtype: pa.DataType) -> bool:
    """Predicate for :func:`where` picking integer, floating and decimal columns."""
    return (
        pa.types.is_integer(dtype)
        or pa.types.is_floating(dtype)
        or pa.types.is_decimal(dtype)
    )

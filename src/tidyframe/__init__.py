"""tidyframe

An in-memory tabular engine exposing the verbs of
tidy data manipulation on top of Apache Arrow.

Tables are immutable values: every transformation
(filtering, selecting, deriving columns, aggregating,
grouping, sorting, renaming, deduplicating and counting)
produces a new table and never changes the one it started from.

The library is constituted by two components,
each isolated within its own package and documented
in literate programming style:

* The Compute Engine, in charge of executing the transformations on the data.
* The Dataframe API, which provides an high level API for the compute engine.

For the user guide and code documentation of each component, refer to the
component itself.
"""

from . import compute, dataframe
from .dataframe import Dataframe, desc

__all__ = ("compute", "dataframe", "Dataframe", "desc")

"""Dataframe library built on top of the tidyframe compute engine.

A dataframe library is a tool designed to handle and manipulate structured data,
typically in the form of tables (i.e., rows and columns).
It allows users to load data from various sources (like CSV files or databases),
explore it, apply transformations, and analyze it.

The tidyframe Dataframe exposes the verbs of tidy data manipulation,
each of them returning a new Dataframe:

* ``filter`` keeps the rows matching predicates.
* ``select`` keeps columns picked by name, range or pattern.
* ``mutate`` derives new columns or replaces existing ones.
* ``summarise`` reduces rows to aggregated values.
* ``group_by`` and ``ungroup`` make ``mutate``, ``filter`` and ``summarise``
  work for each group of rows.
* ``arrange`` sorts rows.
* ``rename`` renames columns.
* ``distinct`` removes duplicated rows.
* ``count`` counts rows for each distinct value.

Verbs can be chained to express an analysis::

    from tidyframe.compute import col, case_when, SumAggregation
    from tidyframe.dataframe import Dataframe, desc

    Dataframe.open_csv("sales.csv") \\
      .filter(col("region").is_in(["North", "East"])) \\
      .mutate(size=case_when((col("amount") > 1000, "Large"), default="Small")) \\
      .group_by("region", "size") \\
      .summarise(total=SumAggregation("amount")) \\
      .arrange(desc("total")) \\
      .to_arrow()
"""

from .dataframe import Dataframe, GroupedDataframe, SortKey, desc

__all__ = ("Dataframe", "GroupedDataframe", "SortKey", "desc")

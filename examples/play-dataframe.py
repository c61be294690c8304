import datetime
import logging

import pyarrow.compute as pc

from tidyframe.compute import (
  Across,
  MeanAggregation,
  MedianAggregation,
  SumAggregation,
  case_when,
  col,
  n,
  starts_with,
)
from tidyframe.dataframe import Dataframe, desc

logging.basicConfig(level=logging.DEBUG)

sales = Dataframe.from_pydict({
  "department": ["Sales", "IT", "Sales", "HR", "IT", "Sales"],
  "employee": ["Anna", "Bruno", "Carla", "Dario", "Elena", "Franco"],
  "amount": [100, 50, 200, 80, 120, 30],
  "price_list": [10.25, 4.5, 19.99, 8.0, 11.75, 2.5],
  "price_paid": [9.5, 4.5, 18.0, 7.25, 11.0, 2.5],
  "day": [datetime.date(2024, m, 1) for m in (1, 2, 3, 4, 5, 6)],
})

labelled = sales \
  .filter(col("day") >= datetime.date(2024, 2, 1)) \
  .mutate(
    Across(starts_with("price"), pc.round),
    discount=col("price_list") - col("price_paid"),
    level=case_when(
      (col("amount") > 150, "High"),
      (col("amount") > 75, "Mid"),
      default="Low",
    ),
  )
print(labelled.to_arrow())

by_department = sales \
  .group_by("department") \
  .summarise(
    Across(starts_with("price"), {"mean": MeanAggregation, "median": MedianAggregation}),
    total=SumAggregation("amount"),
    employees=n(),
  ) \
  .arrange(desc("total"))
print(by_department.to_arrow())

print(sales.count("department", sort=True).to_pydict())

"""Dataframe library built on top of hoopwrangle.

A dataframe library is a tool designed to handle and manipulate structured data,
typically in the form of tables (i.e., rows and columns).
It allows users to load data from various sources (like CSV files),
explore it, apply transformations, and analyze it.

Dataframes provide an efficient way to perform operations such as filtering,
aggregation, and merging of datasets.

The verbs provided by the hoopwrangle dataframe follow the
naming of the ``dplyr`` R package, which is the most common
vocabulary in data wrangling workshops::

  players.filter(...).mutate(...).group_by(...).summarize(...).arrange(...)

This module shows how to implement a custom dataframe library,
using the hoopwrangle compute capabilities as its foundation.
"""

from ..compute import col, lit
from .dataframe import Dataframe, asc, desc

__all__ = ("Dataframe", "asc", "desc", "col", "lit")

"""The Dataframe object itself."""
import logging
from typing import Any, Self

import pyarrow as pa

from .. import config
from ..compute import (
  AggregateNode,
  CSVDataSource,
  DropNullNode,
  FilterNode,
  JoinNode,
  PaginateNode,
  ProjectNode,
  PyArrowTableDataSource,
  RenameNode,
  SortNode,
)
from ..compute.aggregate import Aggregation
from ..compute.base import QueryPlanNode
from ..compute.expressions import Expression
from ..utils import tabulate

log = logging.getLogger(__name__)

SortKey = str | tuple[str, str]


def asc(column: str) -> tuple[str, str]:
  """Sort by the column in ascending order, for :meth:`Dataframe.arrange`."""
  return (column, "ascending")


def desc(column: str) -> tuple[str, str]:
  """Sort by the column in descending order, for :meth:`Dataframe.arrange`."""
  return (column, "descending")


class Dataframe:
  """Data structure that handles data in rows and columns.

  The Dataframe object allows to represent in-memory data
  and perform transformations over it.

  The hoopwrangle dataframe object is lazy, which means that
  any transformation or analysis will be applied only when the
  ``.collect()`` method will be invoked and no data is kept
  in memory until that moment (unless it already was).
  Errors like referring to a column that doesn't exist
  are thus reported when the data is collected.

  The dataframe is also immutable: every transformation returns
  a new Dataframe and never changes the one it was applied to.
  Previous dataframes can be safely reused::

    players = Dataframe.open_csv("players.csv")
    veterans = players.filter(FunctionCallExpression(pc.greater, col("Age"), 30))
    # players still contains all the players

  A dataframe can be grouped by one or more columns,
  the grouping is carried along with the data and
  scopes the following ``filter``, ``mutate`` and ``summarize``
  to the rows of each group, until ``summarize`` or ``ungroup``
  dissolve it.
  """
  def __init__(
    self,
    node_or_table: QueryPlanNode | pa.Table | pa.RecordBatch,
    groups: tuple[str, ...] = (),
  ) -> None:
    """
    :param node_or_table: A compute engine node expected to emit
                          the data for the dataframe or a `pyarrow.Table`.
    :param groups: The columns the data is grouped by.
    """
    if isinstance(node_or_table, (pa.Table, pa.RecordBatch)):
      node_or_table = PyArrowTableDataSource(node_or_table)

    if not isinstance(node_or_table, QueryPlanNode):
      raise ValueError("Invalid input, expected a QueryPlanNode or a PyArrow Table")

    self.node = node_or_table
    self._groups = tuple(groups)

  @classmethod
  def open_csv(cls, filename: str) -> Self:
    """Open a CSV file and create a Dataframe out of its data.

    :param filename: The path to a local CSV file.
    """
    return cls(CSVDataSource(filename))

  @property
  def groups(self) -> tuple[str, ...]:
    """The columns the dataframe is grouped by, empty if not grouped."""
    return self._groups

  @property
  def columns(self) -> list[str]:
    """The names of the columns of the dataframe."""
    return self.to_arrow().column_names

  def _derive(self, node: QueryPlanNode, groups: tuple[str, ...] | None = None) -> Self:
    if groups is None:
      groups = self._groups
    return self.__class__(node, groups)

  def select(self, *columns: str) -> Self:
    """Keep only the given columns, in the given order.

    When the dataframe is grouped, the grouping columns
    are always preserved, before the selected ones.
    """
    columns = list(columns)
    keys = [k for k in self._groups if k not in columns]
    return self._derive(ProjectNode(keys + columns, None, self.node))

  def filter(self, *predicates: Expression) -> Self:
    """Apply a filter to the data and return a new Dataframe.

    The returned dataframe will only contain the data that
    matches all the filter predicates.

    When the dataframe is grouped, the predicates are evaluated
    for each group, so a predicate like ``G == group_max(G)``
    keeps the row with the most games of each group.

    :param predicates: The expressions representing the predicate.
                       for example `G > 10`.
    """
    node = self.node
    for predicate in predicates:
      node = FilterNode(predicate, node, keys=list(self._groups))
    return self._derive(node)

  def mutate(self, expressions: dict[str, Expression] | None = None, **named: Expression) -> Self:
    """Add new columns computed from the existing ones.

    A column with the same name of an existing one replaces it.
    Columns are computed in order, so they can refer to
    the ones computed before them::

      df.mutate(ppg=divide(col("PTS"), col("G")))

    When the dataframe is grouped, group aggregates
    like :func:`hoopwrangle.compute.group_mean` refer to the group of each row.
    """
    project = {**(expressions or {}), **named}
    return self._derive(ProjectNode(None, project, self.node, keys=list(self._groups)))

  def group_by(self, *keys: str) -> Self:
    """Group the data by the given columns.

    The rows are not changed, the grouping only affects
    the subsequent operations.
    """
    return self._derive(self.node, tuple(keys))

  def ungroup(self) -> Self:
    """Remove the grouping from the dataframe."""
    return self._derive(self.node, ())

  def summarize(self, aggregations: dict[str, Aggregation] | None = None, **named: Aggregation) -> Self:
    """Compute aggregations, one row for each group.

    When the dataframe is not grouped, a single row is computed.
    The result contains the grouping columns followed by the
    aggregations and is not grouped anymore::

      df.group_by("Tm").summarize(team_ft_pct=RatioAggregation("FT", "FTA"))
    """
    aggregations = {**(aggregations or {}), **named}
    return self._derive(AggregateNode(list(self._groups), aggregations, self.node), ())

  def arrange(self, *keys: SortKey) -> Self:
    """Sort the rows by the given columns.

    Columns are sorted in ascending order, unless they
    are wrapped by :func:`desc`. Sorting is stable.
    """
    names = []
    descending = []
    for key in keys:
      if isinstance(key, str):
        key = asc(key)
      column, direction = key
      if direction not in ("ascending", "descending"):
        raise ValueError(f"Unsupported sort direction {direction!r}")
      names.append(column)
      descending.append(direction == "descending")
    return self._derive(SortNode(names, descending, self.node))

  def rename(self, mapping: dict[str, str] | None = None, **named: str) -> Self:
    """Rename columns using a ``{old_name: new_name}`` mapping.

    Grouping columns that get renamed remain grouping columns.
    """
    mapping = {**(mapping or {}), **named}
    groups = tuple(mapping.get(k, k) for k in self._groups)
    return self._derive(RenameNode(mapping, self.node), groups)

  def drop_na(self, *columns: str) -> Self:
    """Discard rows that have missing values in any of the given columns.

    When no column is provided, all columns are checked.
    """
    return self._derive(DropNullNode(list(columns) or None, self.node))

  def join(
    self,
    other: "Dataframe",
    on: str,
    right_on: str | None = None,
    how: str = "inner",
    suffixes: tuple[str, str] = ("_left", "_right"),
    keep: str = "both",
  ) -> Self:
    """Join with another dataframe on a key column.

    The result is not grouped.

    :param other: The dataframe to join with, the right side of the join.
    :param on: The key column of this dataframe.
    :param right_on: The key column of the other dataframe, same as ``on`` if omitted.
    :param how: ``inner``, ``left``, ``right`` or ``full``.
    :param suffixes: Added to conflicting columns when ``keep="both"``.
    :param keep: Which side wins when both have a column with the same name:
                 ``both``, ``left`` or ``right``.
    """
    node = JoinNode(
      on, right_on or on, self.node, other.node, how=how, suffixes=suffixes, keep=keep
    )
    return self._derive(node, ())

  def head(self, n: int = 5) -> Self:
    """Only keep the first ``n`` rows."""
    return self._derive(PaginateNode(0, n, self.node))

  def collect(self) -> Self:
    """Collect all data of the dataframe in memory.

    Returns a new Dataframe that has all data from the
    previous dataframe eagerly loaded in memory.
    """
    return self._derive(PyArrowTableDataSource(self.to_arrow()))

  def to_arrow(self) -> pa.Table:
    """Collect all the data and return a pyarrow.Table"""
    batches = list(self.node.batches())
    if not batches:
      return pa.table({})
    return pa.Table.from_batches(batches)

  def to_pylist(self) -> list[dict[str, Any]]:
    """Collect all the data as a list of rows."""
    return self.to_arrow().to_pylist()

  def __len__(self) -> int:
    return self.to_arrow().num_rows

  def __str__(self) -> str:
    return self.render(config.MAX_ROWS)

  def render(self, max_rows: int | None = None) -> str:
    """Format the data as a text table."""
    if max_rows is None:
      max_rows = config.MAX_ROWS
    table = tabulate.tabulate(self.to_arrow(), max_rows=max_rows)
    if self._groups:
      table = f"Groups: {', '.join(self._groups)}\n{table}"
    return table

  def show(self, max_rows: int | None = None) -> None:
    """Print the data as a text table."""
    print(self.render(max_rows))

"""The HoopWrangle Compute Engine

The compute engine defines the in-memory
format for query plans and the plan nodes
supported.

The compute engine is tightly bound to Apache Arrow,
thus the engine will expect to always deal with
:class:`pyarrow.RecordBatch` and emit a new RecordBatch
as the result of the node execution.

This allows to easily build compute pipelines like::

    (RecordBatch)-->Node1--(RecordBatch)-->Node2--(RecordBatch)-->...

The query plan nodes themselves are in charge of their execution,
this keeps the behavior near to the node and thus makes easy to
know how a Node is actually executed without having to look around too much.

Building a query plan requires to combine the nodes that we want
to be executed starting with one or more ``DataSource`` nodes as the
leafs node of a query:

>>> import pyarrow as pa
>>> data = pa.table({
...    "Player": pa.array(["Player A", "Player B", "Player C", "Player D"]),
...    "G": pa.array([2, 4, 5, 70])
... })
>>>
>>> import pyarrow.compute as pc
>>> from hoopwrangle.compute import col, PyArrowTableDataSource
>>> from hoopwrangle.compute import FilterNode, FunctionCallExpression
>>> # SELECT * FROM data WHERE G >= 5
>>> query = FilterNode(
...     FunctionCallExpression(pc.greater_equal, col("G"), 5),
...     child=PyArrowTableDataSource(
...         data
...     )
... )
>>> for data in query.batches():
...     print(data.to_pydict())
{'Player': ['Player C', 'Player D'], 'G': [5, 70]}
"""

from .aggregate import (
    AggregateNode,
    CountAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    RatioAggregation,
    SumAggregation,
)
from .base import ColumnRef, Literal, col, lit
from .datasources import CSVDataSource, PyArrowTableDataSource
from .expressions import (
    DivideExpression,
    FunctionCallExpression,
    GroupAggregateExpression,
    divide,
    group_count,
    group_max,
    group_mean,
    group_min,
    group_sum,
)
from .filtering import FilterNode
from .join import JoinNode
from .missing import DropNullNode
from .pagination import PaginateNode
from .renaming import RenameNode
from .selection import ProjectNode
from .sorting import SortNode

__all__ = (
    "CSVDataSource",
    "PyArrowTableDataSource",
    "FilterNode",
    "FunctionCallExpression",
    "DivideExpression",
    "GroupAggregateExpression",
    "divide",
    "group_count",
    "group_max",
    "group_mean",
    "group_min",
    "group_sum",
    "col",
    "lit",
    "ColumnRef",
    "Literal",
    "PaginateNode",
    "SortNode",
    "ProjectNode",
    "RenameNode",
    "DropNullNode",
    "JoinNode",
    "AggregateNode",
    "CountAggregation",
    "MaxAggregation",
    "MeanAggregation",
    "MinAggregation",
    "RatioAggregation",
    "SumAggregation",
)

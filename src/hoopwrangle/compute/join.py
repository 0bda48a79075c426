"""Query plan nodes that implement join operations.

The join operations are implemented with a hash join algorithm:
an hash table is built from the keys of the right table,
and then it's probed with the keys of the left table to find
the matching rows.

Join Types
==========

:class:`JoinNode` supports the most common types of joins:

* ``inner``: only the rows whose key exists in both tables.
* ``left``: all rows of the left table, with nulls for the
  right columns when there is no matching row.
* ``right``: all rows of the right table, with nulls for the
  left columns when there is no matching row.
* ``full``: all rows of both tables.

>>> import pyarrow as pa
>>> from hoopwrangle.compute import JoinNode, PyArrowTableDataSource
>>> left = PyArrowTableDataSource(pa.record_batch({"id": [1, 2, 3], "name": ["Alice", "Bob", "Charlie"]}))
>>> right = PyArrowTableDataSource(pa.record_batch({"id": [3, 2], "age": [25, 30]}))
>>> join_node = JoinNode("id", "id", left, right)
>>> next(join_node.batches()).to_pydict()
{'id': [2, 3], 'name': ['Bob', 'Charlie'], 'age': [30, 25]}

Conflicting Columns
===================

When both tables have a column with the same name,
which is not the join key, the ``keep`` option decides
what happens:

* ``both``: both columns are kept and their names get a suffix,
  by default ``_left`` and ``_right``.
* ``left``: only the column of the left table is kept.
* ``right``: only the column of the right table is kept.
"""

import logging

import pyarrow as pa
import pyarrow.compute as pc

from ..errors import DuplicateColumnError, TypeMismatchError
from .base import QueryPlanNode, check_columns, concat_batches

log = logging.getLogger(__name__)

JOIN_TYPES = ("inner", "left", "right", "full")
KEEP_OPTIONS = ("both", "left", "right")


class JoinNode(QueryPlanNode):
    """Join two data sources on a key column.

    The join is performed by building an hash table of the
    right keys and probing it with the left keys.

    Supposing we have two tables::

        left:
        +----+--------+
        | id | name   |
        +----+--------+
        | 1  | Alice  |
        | 2  | Bob    |
        | 3  | Charlie|
        +----+--------+


        right:
        +----+-----+
        | id | age |
        +----+-----+
        | 3  | 25  |
        | 2  | 30  |
        +----+-----+

    We would perform the following steps:

    1. Build the hash table of the right keys,
       mapping each key to the rows where it appears::

        {3: [0], 2: [1]}

    2. Look up each left key in the hash table, this tells us
       which rows of the right table match each row of the left table.
       The result is a list of pairs of row indices (left, right)::

        [(1, 1), (2, 0)]

       For ``left`` and ``full`` joins, the left rows without a match
       are added with a missing right index ``(0, None)``.
       For ``right`` and ``full`` joins, the right rows that
       never matched are added at the end with a missing left index.

    3. Take the rows from each table according to the pairs
       of indices. Missing indices result in rows of nulls.
       The rows are now aligned: row[0] of both tables refer to the same key::

        left:
        +----+--------+
        | id | name   |
        +----+--------+
        | 2  | Bob    |
        | 3  | Charlie|
        +----+--------+

        right:
        +----+-----+
        | id | age |
        +----+-----+
        | 2  | 30  |
        | 3  | 25  |
        +----+-----+

    4. Combine the two tables into a new table.
       This is done by creating a new recordbatch that contains the columns of both tables.
       The key is only kept once, taking its value from the table that has it::

        combined:
        +----+--------+-----+
        | id | name   | age |
        +----+--------+-----+
        | 2  | Bob    | 30  |
        | 3  | Charlie| 25  |
        +----+--------+-----+

    The resulting rows follow the order of the left table, and
    for each left row the matching right rows are in their original order.
    Rows with a missing key never match anything.
    """

    def __init__(
        self,
        left_key: str,
        right_key: str,
        left_child: QueryPlanNode,
        right_child: QueryPlanNode,
        how: str = "inner",
        suffixes: tuple[str, str] = ("_left", "_right"),
        keep: str = "both",
    ) -> None:
        """
        :param left_key: The key to join on in the left table.
        :param right_key: The key to join on in the right table.
        :param left_child: The left source of data to join.
        :param right_child: The right source of data to join.
        :param how: The type of join: ``inner``, ``left``, ``right`` or ``full``.
        :param suffixes: The suffixes added to the conflicting columns
                         of the left and right table when ``keep="both"``.
        :param keep: Which of the conflicting columns to keep,
                     ``both``, ``left`` or ``right``.
        """
        if how not in JOIN_TYPES:
            raise ValueError(f"Unsupported join type {how!r}, expected one of {JOIN_TYPES}")
        if keep not in KEEP_OPTIONS:
            raise ValueError(f"Unsupported keep {keep!r}, expected one of {KEEP_OPTIONS}")
        self.left_key = left_key
        self.right_key = right_key
        self.left_child = left_child
        self.right_child = right_child
        self.how = how
        self.suffixes = tuple(suffixes)
        self.keep = keep

    def __str__(self) -> str:
        return (
            f"JoinNode(left_key={self.left_key}, right_key={self.right_key}, how={self.how}, "
            f"keep={self.keep}, left={self.left_child}, right={self.right_child})"
        )

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Perform the join operation.

        Accumulates all rows of both children to
        perform the join operation, so it is not suitable
        for large datasets.
        """
        left_rb = concat_batches(list(self.left_child.batches()))
        right_rb = concat_batches(list(self.right_child.batches()))
        if left_rb is None or right_rb is None:
            # One of the sides provided no data, not even its schema.
            return

        check_columns(left_rb.schema, [self.left_key])
        check_columns(right_rb.schema, [self.right_key])
        left_rb, right_rb = self._unify_keys(left_rb, right_rb)

        left_indices, right_indices = self._match_rows(
            left_rb.column(self.left_key).to_pylist(),
            right_rb.column(self.right_key).to_pylist(),
        )
        aligned_left = left_rb.take(pa.array(left_indices, type=pa.int64()))
        aligned_right = right_rb.take(pa.array(right_indices, type=pa.int64()))
        log.debug(
            "%s join of %d and %d rows produced %d rows",
            self.how,
            left_rb.num_rows,
            right_rb.num_rows,
            len(left_indices),
        )
        yield self._combine(aligned_left, aligned_right)

    def _match_rows(
        self, left_keys: list, right_keys: list
    ) -> tuple[list[int | None], list[int | None]]:
        """Compute the pairs of rows of the two tables that have to be joined."""
        hashtable: dict = {}
        for idx, key in enumerate(right_keys):
            if key is not None:
                hashtable.setdefault(key, []).append(idx)

        left_indices: list[int | None] = []
        right_indices: list[int | None] = []
        matched_right = set()
        for idx, key in enumerate(left_keys):
            matches = hashtable.get(key, []) if key is not None else []
            for match in matches:
                left_indices.append(idx)
                right_indices.append(match)
                matched_right.add(match)
            if not matches and self.how in ("left", "full"):
                left_indices.append(idx)
                right_indices.append(None)

        if self.how in ("right", "full"):
            for idx in range(len(right_keys)):
                if idx not in matched_right:
                    left_indices.append(None)
                    right_indices.append(idx)

        return left_indices, right_indices

    def _unify_keys(
        self, left: pa.RecordBatch, right: pa.RecordBatch
    ) -> tuple[pa.RecordBatch, pa.RecordBatch]:
        """Cast the key columns of both sides to the same type.

        Keys can only match when they hold the same kind of values,
        an integer id never matches a text id.
        """
        left_type = left.schema.field(self.left_key).type
        right_type = right.schema.field(self.right_key).type
        keytype = common_key_type(left_type, right_type)
        if keytype is None:
            raise TypeMismatchError(
                f"Unable to join {self.left_key} ({left_type}) with {self.right_key} ({right_type})"
            )
        return _cast_column(left, self.left_key, keytype), _cast_column(
            right, self.right_key, keytype
        )

    def _combine(self, left: pa.RecordBatch, right: pa.RecordBatch) -> pa.RecordBatch:
        """Combine the aligned left and right batches in a single one."""
        right_names = [n for n in right.schema.names if n != self.right_key]
        conflicts = set(left.schema.names) & set(right_names)
        left_suffix, right_suffix = self.suffixes

        combined_data = {}
        for name in left.schema.names:
            data = left.column(name)
            if name == self.left_key and self.how in ("right", "full"):
                # The key is missing on the left for rows that only exist on the right.
                combined_data[name] = pc.coalesce(data, right.column(self.right_key))
            elif name == self.left_key:
                combined_data[name] = data
            elif name in conflicts:
                if self.keep == "both":
                    combined_data[self._new_name(combined_data, name + left_suffix)] = data
                elif self.keep == "left":
                    combined_data[name] = data
            else:
                combined_data[name] = data

        for name in right_names:
            data = right.column(name)
            if name == self.left_key:
                # Can't replace the join key, so always disambiguate it.
                combined_data[self._new_name(combined_data, name + right_suffix)] = data
            elif name in conflicts:
                if self.keep == "both":
                    combined_data[self._new_name(combined_data, name + right_suffix)] = data
                elif self.keep == "right":
                    combined_data[self._new_name(combined_data, name)] = data
            else:
                combined_data[self._new_name(combined_data, name)] = data
        return pa.record_batch(combined_data)

    @staticmethod
    def _new_name(existing: dict, name: str) -> str:
        if name in existing:
            raise DuplicateColumnError(name)
        return name


def common_key_type(left: pa.DataType, right: pa.DataType) -> pa.DataType | None:
    """The type both join keys can be cast to, ``None`` if there is none.

    >>> common_key_type(pa.int32(), pa.int64())
    DataType(int64)
    >>> common_key_type(pa.int64(), pa.string()) is None
    True
    """
    if left == right:
        return left
    # A column where all values are missing is typed as null.
    if pa.types.is_null(left):
        return right
    if pa.types.is_null(right):
        return left
    if pa.types.is_integer(left) and pa.types.is_integer(right):
        return pa.int64()
    if all(pa.types.is_integer(t) or pa.types.is_floating(t) for t in (left, right)):
        return pa.float64()
    if all(pa.types.is_string(t) or pa.types.is_large_string(t) for t in (left, right)):
        return pa.large_string()
    return None


def _cast_column(batch: pa.RecordBatch, name: str, datatype: pa.DataType) -> pa.RecordBatch:
    index = batch.schema.get_field_index(name)
    data = batch.column(index)
    if data.type == datatype:
        return batch
    return batch.set_column(index, name, data.cast(datatype))

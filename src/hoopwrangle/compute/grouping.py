"""Partition the rows of a batch in groups.

Grouping is the foundation of aggregations and of the
grouped variants of filtering and projection.
Given one or more key columns, the rows that share the
same values for all the keys belong to the same group::

    player_id  Tm   G
    jamesmi01  DAL  20     group ("jamesmi01",)  -> rows [0, 1, 2]
    jamesmi01  LAL  10
    jamesmi01  TOT  30
    smithjo01  BOS  70     group ("smithjo01",)  -> rows [3]

Groups are always returned in the order of their first
appearance in the data and the rows of each group are
in the same order they had in the data.
"""

from typing import Callable

import pyarrow as pa
import pyarrow.compute as pc

from .base import check_columns


def group_rows(batch: pa.RecordBatch, keys: list[str]) -> dict[tuple, pa.Array]:
    """Compute the indices of the rows that belong to each group.

    Returns a dictionary ``{key_values: row_indices}`` where the
    ``key_values`` is a tuple with the value of each key column
    and ``row_indices`` is an array usable by ``batch.take``.

    ``null`` is a valid key value, all the rows with a missing
    key end up in the same group.

    When no keys are provided, all rows belong to a single group.

    >>> batch = pa.record_batch({"Tm": ["BOS", "LAL", "BOS"], "PTS": [10, 20, 30]})
    >>> {k: v.to_pylist() for k, v in group_rows(batch, ["Tm"]).items()}
    {('BOS',): [0, 2], ('LAL',): [1]}
    """
    check_columns(batch.schema, keys)
    if not keys:
        return {(): pa.array(range(batch.num_rows), type=pa.int64())}

    # Dictionaries preserve insertion order, so the groups
    # will be in the order we first encounter their key.
    groups: dict[tuple, list[int]] = {}
    key_columns = [batch.column(k).to_pylist() for k in keys]
    for row_index, key in enumerate(zip(*key_columns)):
        groups.setdefault(key, []).append(row_index)
    return {k: pa.array(rows, type=pa.int64()) for k, rows in groups.items()}


def apply_by_group(
    batch: pa.RecordBatch,
    keys: list[str],
    func: Callable[[pa.RecordBatch], pa.Array | pa.Scalar],
) -> pa.Array:
    """Apply a function to the rows of each group.

    ``func`` receives the sub-batch with the rows of a group
    and must return an array with one value for each of those rows
    (or a scalar that applies to all of them).

    The values computed for each group are then put back
    in the position of the rows they were computed for,
    so the result has one value for each row of ``batch``
    in the original order.

    >>> batch = pa.record_batch({"Tm": ["BOS", "LAL", "BOS"], "PTS": [10, 20, 30]})
    >>> apply_by_group(batch, ["Tm"], lambda b: pc.sum(b["PTS"])).to_pylist()
    [40, 20, 40]
    """
    if batch.num_rows == 0:
        return _as_array(func(batch), 0)

    indices = []
    values = []
    for rows in group_rows(batch, keys).values():
        indices.append(rows)
        values.append(_as_array(func(batch.take(rows)), len(rows)))

    # Groups where all values are missing might have been typed as null,
    # they need to be cast to the type of the other groups to be concatenated.
    datatype = next(
        (v.type for v in values if not pa.types.is_null(v.type)), values[0].type
    )
    values = [v if v.type == datatype else v.cast(datatype) for v in values]

    # The values are sorted by group, reorder them by original row position.
    grouped_values = pa.concat_arrays(values)
    return grouped_values.take(pc.sort_indices(pa.concat_arrays(indices)))


def _as_array(value: pa.Array | pa.ChunkedArray | pa.Scalar, length: int) -> pa.Array:
    if isinstance(value, pa.ChunkedArray):
        return value.combine_chunks()
    if isinstance(value, pa.Scalar):
        return pa.repeat(value, length)
    return value

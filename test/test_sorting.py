import warnings

import pyarrow as pa
import pytest

from hoopwrangle.compute.base import QueryPlanNode
from hoopwrangle.compute.pagination import PaginateNode
from hoopwrangle.compute.sorting import SortNode
from hoopwrangle.errors import UnknownColumnError


class MockQueryPlanNode(QueryPlanNode):
    def __init__(self, batches):
        self._batches = batches

    def batches(self):
        for batch in self._batches:
            yield batch

    def __str__(self):
        return "MockQueryPlanNode"


def test_sort_node_single_batch():
    data = pa.record_batch({"values": [5, 3, 1, 4, 2]})
    child_node = MockQueryPlanNode([data])
    sort_node = SortNode(["values"], [False], child_node)

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [1, 2, 3, 4, 5]


def test_sort_node_multiple_batches():
    data1 = pa.record_batch({"values": [5, 3]})
    data2 = pa.record_batch({"values": [1, 4, 2]})
    child_node = MockQueryPlanNode([data1, data2])
    sort_node = SortNode(["values"], [False], child_node)

    sorted_batches = list(sort_node.batches())
    sorted_values = [
        val for batch in sorted_batches for val in batch.column(0).to_pylist()
    ]
    assert sorted_values == [1, 2, 3, 4, 5]


def test_sort_node_descending():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    child_node = MockQueryPlanNode([data])
    sort_node = SortNode(["values"], [True], child_node)

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [5, 4, 3, 2, 1]


@pytest.mark.parametrize("descending", [False, True])
def test_sort_node_is_stable(descending):
    data = pa.record_batch(
        {"Tm": ["BOS", "LAL", "BOS", "MIA", "LAL"], "order": [0, 1, 2, 3, 4]}
    )
    sort_node = SortNode(["Tm"], [descending], MockQueryPlanNode([data]))
    sorted_batch = next(sort_node.batches())
    if descending:
        assert sorted_batch.column("order").to_pylist() == [3, 1, 4, 0, 2]
    else:
        assert sorted_batch.column("order").to_pylist() == [0, 2, 1, 4, 3]


def test_sort_node_multiple_keys():
    data = pa.record_batch(
        {"Tm": ["BOS", "LAL", "BOS", "LAL"], "PTS": [10, 30, 20, 5]}
    )
    sort_node = SortNode(["Tm", "PTS"], [False, True], MockQueryPlanNode([data]))
    sorted_batch = next(sort_node.batches())
    assert sorted_batch.to_pydict() == {
        "Tm": ["BOS", "BOS", "LAL", "LAL"],
        "PTS": [20, 10, 30, 5],
    }


@pytest.mark.parametrize("descending", [False, True])
def test_sort_node_nulls_at_end(descending):
    data = pa.record_batch({"ppg": [2.5, None, 10.0]})
    sort_node = SortNode(["ppg"], [descending], MockQueryPlanNode([data]))
    values = next(sort_node.batches()).column(0).to_pylist()
    assert values[-1] is None


def test_sort_node_unknown_column():
    data = pa.record_batch({"values": [1, 2]})
    sort_node = SortNode(["other"], [False], MockQueryPlanNode([data]))
    with pytest.raises(UnknownColumnError):
        list(sort_node.batches())


def test_sort_node_invalid_keys_and_descending_length():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    child_node = MockQueryPlanNode([data])
    with pytest.raises(ValueError):
        SortNode(["values"], [True, False], child_node)


def test_sort_node_without_data():
    sort_node = SortNode(["values"], [False], MockQueryPlanNode([]))
    assert list(sort_node.batches()) == []


def test_sort_node_with_paginate_node():
    child_node = MockQueryPlanNode(
        [
            pa.record_batch({"values": [5, 3, 1, 4, 2]}),
            pa.record_batch({"values": [6, 9, 8, 7, 10]}),
        ]
    )
    sort_node = SortNode(["values"], [False], child_node)
    paginate_node = PaginateNode(offset=0, length=2, child=sort_node)

    sorted_batches = next(paginate_node.batches())
    assert sorted_batches["values"].to_pylist() == [1, 2]


def test_paginate_node_across_batches():
    child_node = MockQueryPlanNode(
        [
            pa.record_batch({"values": [1, 2, 3]}),
            pa.record_batch({"values": [4, 5, 6]}),
        ]
    )
    paginate_node = PaginateNode(offset=2, length=3, child=child_node)
    values = [v for b in paginate_node.batches() for v in b["values"].to_pylist()]
    assert values == [3, 4, 5]


def test_paginate_node_out_of_range_keeps_schema():
    child_node = MockQueryPlanNode([pa.record_batch({"values": [1, 2, 3]})])
    batches = list(PaginateNode(offset=10, length=3, child=child_node).batches())
    assert len(batches) == 1
    assert batches[0].num_rows == 0
    assert batches[0].schema.names == ["values"]


def test_paginate_node_negative():
    with pytest.raises(ValueError):
        PaginateNode(offset=0, length=-1, child=MockQueryPlanNode([]))


def test_sort_node_emits_no_warnings():
    data = pa.record_batch({"ppg": [2.5, None, 10.0], "Tm": ["BOS", "LAL", None]})
    sort_node = SortNode(["Tm", "ppg"], [True, False], MockQueryPlanNode([data]))
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = next(sort_node.batches())
    assert result.column("Tm").to_pylist() == ["LAL", "BOS", None]

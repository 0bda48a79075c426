import pyarrow as pa
import pytest

from hoopwrangle.compute import PyArrowTableDataSource
from hoopwrangle.compute.aggregate import (
    AggregateNode,
    CountAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    RatioAggregation,
    SumAggregation,
)
from hoopwrangle.compute.base import QueryPlanNode
from hoopwrangle.errors import TypeMismatchError, UnknownColumnError

TEST_DATA = pa.record_batch(
    {
        "city": pa.array(
            ["New York", "New York", "Los Angeles", "Los Angeles", "New York"]
        ),
        "shop": pa.array(["Shop A", "Shop B", "Shop A", "Shop A2", "Shop B"]),
        "n_employees": pa.array([10, 15, 8, 12, 20]),
    }
)


class MockQueryPlanNode(QueryPlanNode):
    def __init__(self, batches):
        self._batches = batches

    def batches(self):
        yield from self._batches

    def __str__(self):
        return "MockQueryPlanNode"


@pytest.mark.parametrize(
    "aggregation,by_city,by_city_and_shop",
    [
        (SumAggregation("n_employees"), [45, 20], [10, 35, 8, 12]),
        (MinAggregation("n_employees"), [10, 8], [10, 15, 8, 12]),
        (MaxAggregation("n_employees"), [20, 12], [10, 20, 8, 12]),
        (CountAggregation("n_employees"), [3, 2], [1, 2, 1, 1]),
        (MeanAggregation("n_employees"), [15.0, 10.0], [10.0, 17.5, 8.0, 12.0]),
    ],
)
@pytest.mark.parametrize("keys", [["city"], ["city", "shop"]])
def test_aggregations(keys, aggregation, by_city, by_city_and_shop):
    aggregate = AggregateNode(
        keys, {"result": aggregation}, PyArrowTableDataSource(TEST_DATA)
    )
    result = next(aggregate.batches())

    # Groups are in order of first appearance
    if keys == ["city"]:
        assert result.column_names == ["city", "result"]
        assert result.column(0).to_pylist() == ["New York", "Los Angeles"]
        assert result.column(1).to_pylist() == by_city
    else:
        assert result.column_names == ["city", "shop", "result"]
        assert result.column(0).to_pylist() == [
            "New York",
            "New York",
            "Los Angeles",
            "Los Angeles",
        ]
        assert result.column(1).to_pylist() == ["Shop A", "Shop B", "Shop A", "Shop A2"]
        assert result.column(2).to_pylist() == by_city_and_shop


@pytest.mark.parametrize("keys", [["city"], ["city", "shop"]])
def test_aggregate_node_str(keys):
    aggregate = AggregateNode(
        keys,
        {"total_employees": SumAggregation("n_employees")},
        PyArrowTableDataSource(TEST_DATA),
    )
    assert str(aggregate) == (
        "AggregateNode(keys=%r, aggregations={'total_employees': SumAggregation(n_employees)}, "
        "PyArrowTableDataSource(columns=['city', 'shop', 'n_employees'], rows=5))"
        % (keys,)
    )


def test_aggregation_without_keys():
    aggregate = AggregateNode(
        [],
        {"total": SumAggregation("n_employees"), "shops": CountAggregation("shop")},
        PyArrowTableDataSource(TEST_DATA),
    )
    result = next(aggregate.batches())
    assert result.to_pydict() == {"total": [65], "shops": [5]}


def test_aggregation_without_keys_and_rows():
    empty = TEST_DATA.slice(0, 0)
    aggregate = AggregateNode(
        [],
        {"total": SumAggregation("n_employees"), "shops": CountAggregation("shop")},
        PyArrowTableDataSource(empty),
    )
    result = next(aggregate.batches())
    assert result.to_pydict() == {"total": [None], "shops": [0]}


def test_aggregation_across_batches():
    batches = pa.Table.from_batches([TEST_DATA]).to_batches(max_chunksize=2)
    aggregate = AggregateNode(
        ["city"],
        {
            "total": SumAggregation("n_employees"),
            "mean": MeanAggregation("n_employees"),
            "max": MaxAggregation("n_employees"),
        },
        MockQueryPlanNode(batches),
    )
    result = next(aggregate.batches())
    assert result.to_pydict() == {
        "city": ["New York", "Los Angeles"],
        "total": [45, 20],
        "mean": [15.0, 10.0],
        "max": [20, 12],
    }


def test_team_free_throw_percentage():
    data = pa.record_batch(
        {
            "Player": ["A", "B"],
            "Tm": ["X", "X"],
            "G": [10, 5],
            "FT": [5, 8],
            "FTA": [10, 8],
        }
    )
    aggregate = AggregateNode(
        ["Tm"],
        {"team_ft_pct": RatioAggregation("FT", "FTA")},
        PyArrowTableDataSource(data),
    )
    result = next(aggregate.batches())
    assert result.column("Tm").to_pylist() == ["X"]
    assert result.column("team_ft_pct").to_pylist() == [pytest.approx(13 / 18)]


def test_ratio_aggregation_zero_denominator():
    data = pa.record_batch({"Tm": ["X", "Y"], "FT": [0, 3], "FTA": [0, 0]})
    aggregate = AggregateNode(
        ["Tm"], {"pct": RatioAggregation("FT", "FTA")}, PyArrowTableDataSource(data)
    )
    result = next(aggregate.batches())
    assert result.column("pct").to_pylist() == [None, float("inf")]


NULL_DATA = pa.record_batch(
    {
        "Tm": ["X", "X", "Y"],
        "Age": pa.array([20, None, 30]),
    }
)


@pytest.mark.parametrize(
    "aggregation,expected",
    [
        (SumAggregation("Age"), [20, 30]),
        (MeanAggregation("Age"), [20.0, 30.0]),
        (MinAggregation("Age"), [20, 30]),
        (MaxAggregation("Age"), [20, 30]),
        (CountAggregation("Age"), [1, 1]),
        (CountAggregation("Age", mode="all"), [2, 1]),
    ],
)
def test_aggregations_skip_nulls(aggregation, expected):
    aggregate = AggregateNode(["Tm"], {"result": aggregation}, PyArrowTableDataSource(NULL_DATA))
    assert next(aggregate.batches()).column("result").to_pylist() == expected


@pytest.mark.parametrize(
    "aggregation",
    [
        SumAggregation("Age", skip_nulls=False),
        MeanAggregation("Age", skip_nulls=False),
        MinAggregation("Age", skip_nulls=False),
        MaxAggregation("Age", skip_nulls=False),
    ],
)
def test_aggregations_propagate_nulls(aggregation):
    aggregate = AggregateNode(["Tm"], {"result": aggregation}, PyArrowTableDataSource(NULL_DATA))
    values = next(aggregate.batches()).column("result").to_pylist()
    assert values[0] is None
    assert values[1] == 30


def test_aggregation_all_nulls_group():
    data = pa.record_batch({"Tm": ["X", "Y"], "Age": pa.array([None, 30])})
    aggregate = AggregateNode(
        ["Tm"],
        {"total": SumAggregation("Age"), "mean": MeanAggregation("Age")},
        PyArrowTableDataSource(data),
    )
    result = next(aggregate.batches())
    assert result.to_pydict() == {"Tm": ["X", "Y"], "total": [None, 30], "mean": [None, 30.0]}


def test_aggregation_null_keys_form_a_group():
    data = pa.record_batch({"College": ["Duke", None, "Duke", None], "n": [1, 2, 3, 4]})
    aggregate = AggregateNode(["College"], {"n": SumAggregation("n")}, PyArrowTableDataSource(data))
    assert next(aggregate.batches()).to_pydict() == {"College": ["Duke", None], "n": [4, 6]}


@pytest.mark.parametrize("aggregation", [SumAggregation("shop"), MeanAggregation("shop")])
def test_aggregation_type_mismatch(aggregation):
    aggregate = AggregateNode(["city"], {"result": aggregation}, PyArrowTableDataSource(TEST_DATA))
    with pytest.raises(TypeMismatchError):
        next(aggregate.batches())


def test_min_max_of_strings():
    aggregate = AggregateNode(
        ["city"],
        {"first": MinAggregation("shop"), "last": MaxAggregation("shop")},
        PyArrowTableDataSource(TEST_DATA),
    )
    result = next(aggregate.batches())
    assert result.column("first").to_pylist() == ["Shop A", "Shop A"]
    assert result.column("last").to_pylist() == ["Shop B", "Shop A2"]


@pytest.mark.parametrize(
    "keys,aggregation",
    [(["country"], SumAggregation("n_employees")), (["city"], SumAggregation("revenue"))],
)
def test_aggregation_unknown_column(keys, aggregation):
    aggregate = AggregateNode(keys, {"result": aggregation}, PyArrowTableDataSource(TEST_DATA))
    with pytest.raises(UnknownColumnError):
        next(aggregate.batches())


def test_invalid_count_mode():
    with pytest.raises(ValueError):
        CountAggregation("shop", mode="distinct")


@pytest.mark.parametrize("keys", [["city"], ["city", "shop"]])
def test_count_aggregation_50_rows(keys):
    aggregate = AggregateNode(
        keys,
        {"count_employees": CountAggregation("n_employees")},
        PyArrowTableDataSource(_generate_50rows_test_data()),
    )
    result = next(aggregate.batches())

    if keys == ["city"]:
        assert result.column_names == ["city", "count_employees"]
        assert result.column(0).to_pylist() == [
            "City0",
            "City1",
            "City2",
            "City3",
            "City4",
        ]
        assert result.column(1).to_pylist() == [20, 20, 20, 20, 20]
    else:
        assert result.column_names == ["city", "shop", "count_employees"]
        expected_cities = ["City" + str(i) for i in range(5) for _ in range(10)]
        expected_shops = ["Shop" + str(i) for _ in range(5) for i in range(10)]
        expected_counts = [2] * 50
        assert result.column(0).to_pylist() == expected_cities
        assert result.column(1).to_pylist() == expected_shops
        assert result.column(2).to_pylist() == expected_counts


def _generate_50rows_test_data():
    cities = ["City" + str(i) for i in range(5)]
    shops = ["Shop" + str(i) for i in range(10)]
    data = {"city": [], "shop": [], "n_employees": []}
    for city in cities:
        for shop in shops:
            for _ in range(2):  # Ensure each combination appears at least twice
                data["city"].append(city)
                data["shop"].append(shop)
                data["n_employees"].append(10)  # Arbitrary number of employees
    return pa.record_batch(data)


def test_count_aggregation_propagate_nulls():
    aggregate = AggregateNode(
        ["Tm"],
        {"result": CountAggregation("Age", skip_nulls=False)},
        PyArrowTableDataSource(NULL_DATA),
    )
    assert next(aggregate.batches()).column("result").to_pylist() == [None, 1]

import pyarrow.compute as pc

from hoopwrangle import config
from hoopwrangle.compute import CSVDataSource, FilterNode, FunctionCallExpression, col

query = FilterNode(
    FunctionCallExpression(pc.equal, col("Tm"), "BOS"),
    CSVDataSource(config.DATA_DIR / config.PLAYERS_FILE),
)
for batch in query.batches():
    print("---")
    print(batch.to_pydict())

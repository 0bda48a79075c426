import pyarrow.compute as pc

from hoopwrangle import config
from hoopwrangle.compute import FunctionCallExpression, divide
from hoopwrangle.dataframe import Dataframe, col, desc

df = Dataframe.open_csv(config.DATA_DIR / config.PLAYERS_FILE) \
  .filter(FunctionCallExpression(pc.equal, col("Pos"), "PG")) \
  .mutate(ppg=divide(col("PTS"), col("G"))) \
  .select("Player", "Tm", "G", "ppg") \
  .arrange(desc("ppg")) \
  .collect()

print(df)

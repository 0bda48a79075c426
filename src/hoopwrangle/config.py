"""Settings for the walkthrough and the table renderer.

Every value can be overridden through an environment variable,
which is useful to point the walkthrough to a different season::

    HOOPWRANGLE_DATA_DIR=/tmp/season2022 python -m hoopwrangle.walkthrough
"""

import os
from pathlib import Path

DATA_DIR: Path = Path(
    os.getenv("HOOPWRANGLE_DATA_DIR", Path(__file__).resolve().parent / "data")
)

PLAYERS_FILE: str = "players.csv"
PLAYER_INFO_FILE: str = "player_info.csv"

# Rows printed when a table is displayed
MAX_ROWS: int = int(os.getenv("HOOPWRANGLE_MAX_ROWS", "10"))

LOG_LEVEL: str = os.getenv("HOOPWRANGLE_LOG_LEVEL", "WARNING")

# Team abbreviation used for the combined line of traded players
TOTAL_TEAM: str = "TOT"

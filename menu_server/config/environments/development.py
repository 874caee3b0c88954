from typing import Literal

from ..settings import Settings


class DevelopmentSettings(Settings):
    debug: bool = True
    database_url: str = "duckdb://./data/kindergarten_menu_dev.duckdb"
    apply_failure_mode: Literal["best_effort", "fail_fast"] = "fail_fast"

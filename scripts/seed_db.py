from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv

from shift_tracker.config import get_settings_module
from shift_tracker.database.bootstrap import apply_seed_sql
from shift_tracker.logging_setup import configure_logging

logger = logging.getLogger("shift_tracker.scripts.seed_db")


def main() -> None:
    load_dotenv(override=False)
    configure_logging("INFO")
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    seed_path = Path(__file__).resolve().parents[1] / "database" / "seed.sql"
    apply_seed_sql(db_config, seed_path=seed_path)
    logger.info(
        "seeded database -> %s@%s:%s/%s",
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )


if __name__ == "__main__":
    main()

"""Example: drive the service layer directly (no Flask).

Controllers are thin; the check-in and break rules live in the services.
Needs a database prepared with ``scripts/init_db.py`` and ``scripts/seed_db.py``.
"""

import importlib
import sys

from dotenv import load_dotenv

from shift_tracker.common.serializers import to_jsonable
from shift_tracker.config import get_settings_module
from shift_tracker.container import build_container
from shift_tracker.core.exceptions import DomainError


def main(agent_id: int = 1):
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)

    try:
        result = container.session_service.check_in(agent_id)
        print("checked in:", result.status.value, "late_minutes =", result.late_minutes)
    except DomainError as e:
        print("check-in refused:", e.code, e.context)

    print(to_jsonable(container.session_service.get_status(agent_id)))


if __name__ == "__main__":
    main(int(sys.argv[1]) if len(sys.argv) > 1 else 1)

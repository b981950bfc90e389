import os
import tempfile

import pytest

# Settings are instantiated on import; keep the default database out of the working tree
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(prefix="dub-schedule-"), "test.db"))

from dub_schedule.config import CustomSettings
from dub_schedule.services.snapshot_store import reset_snapshot_store

from factories import ANILIST_URL, CURRENT_URL, HISTORICAL_URL


@pytest.fixture
def app_settings(tmp_path):
    return CustomSettings(
        database_path=str(tmp_path / "dub.db"),
        current_schedule_url=CURRENT_URL,
        historical_feed_url=HISTORICAL_URL,
        anilist_api_url=ANILIST_URL,
        anilist_username="tester",
        http_max_retries=1,
    )


@pytest.fixture(autouse=True)
def fresh_snapshot_store():
    reset_snapshot_store()
    yield
    reset_snapshot_store()

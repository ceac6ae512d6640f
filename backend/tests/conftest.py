# backend/tests/conftest.py
from __future__ import annotations

import os
import tempfile

# Settings are read at import time, so the environment is pinned before any
# gestimmo module loads.
_TMP = tempfile.mkdtemp(prefix="gestimmo-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP}/test.db"
os.environ.pop("ADMIN_DATABASE_URL", None)
os.environ["STORAGE_DIR"] = os.path.join(_TMP, "storage")
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["APP_ENV"] = "local"
os.environ["AUTH_PBKDF2_ITERS"] = "1000"

import pytest
from fastapi.testclient import TestClient

from gestimmo.db import Base, engine
from gestimmo import models  # noqa: F401


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    from gestimmo.main import create_app

    return TestClient(create_app())

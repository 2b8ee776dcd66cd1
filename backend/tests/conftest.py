"""
Test configuration: a throwaway SQLite database, UTC as the local timezone, scheduler and SMS off.

Environment is set before anything imports shuttle.config, so the module-level settings and
engine pick it up. Each test gets a freshly created schema.
"""
import os
import sys
import tempfile
from pathlib import Path

_DB_DIR = tempfile.mkdtemp(prefix="shuttle-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/shuttle.db"
os.environ["APP_TIMEZONE"] = "UTC"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["TWILIO_FROM_NUMBER"] = ""
os.environ["TRAVEL_MODE"] = ""

BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

import pytest  # noqa: E402

import shuttle.models  # noqa: E402,F401
from shuttle.db.base import Base  # noqa: E402
from shuttle.db.session import SessionLocal, engine  # noqa: E402


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

"""
Pytest fixtures for notification engine tests.
"""
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Ensure src/ is on sys.path so tests can import care_notifications.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from care_notifications import (  # noqa: E402
    AlertStore,
    ChangeNotifier,
    DatabaseManager,
    InMemorySnapshotSource,
    NotificationEngine,
)
from care_notifications.config import EngineSettings  # noqa: E402
from care_notifications.models import (  # noqa: E402
    AlertCategory,
    AlertKind,
    AlertPriority,
    CandidateAlert,
    TenantContext,
)

# Load environment variables
load_dotenv()


# Fixed evaluation time so windows and boundaries are deterministic
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

ORG = "org-1"
OTHER_ORG = "org-2"


def make_candidate(
    title: str = "Abnormal Vital Signs",
    message: str = "Maria Silva: Systolic pressure: 190mmHg",
    category: AlertCategory = AlertCategory.HEALTH,
    kind: AlertKind = AlertKind.WARNING,
    priority: AlertPriority = AlertPriority.HIGH,
    timestamp: datetime = NOW,
    **extra,
) -> CandidateAlert:
    """Build a candidate alert with sensible defaults."""
    return CandidateAlert(
        kind=kind,
        category=category,
        title=title,
        message=message,
        timestamp=timestamp,
        priority=priority,
        **extra,
    )


# ============================================================================
# Identity Fixtures
# ============================================================================

@pytest.fixture
def context():
    """Staff member of the default organization."""
    return TenantContext(user_id="user-1", tenant_id=ORG, role="staff")


@pytest.fixture
def admin_context():
    """Administrator of the default organization."""
    return TenantContext(user_id="admin-1", tenant_id=ORG, role="admin")


@pytest.fixture
def other_context():
    """Staff member of a different organization."""
    return TenantContext(user_id="user-9", tenant_id=OTHER_ORG, role="staff")


# ============================================================================
# Storage Fixtures
# ============================================================================

@pytest.fixture
def engine_settings(tmp_path):
    """Engine settings pointing at a temporary data directory."""
    return EngineSettings(data_path=str(tmp_path))


@pytest.fixture
def db(engine_settings):
    return DatabaseManager(settings=engine_settings)


@pytest.fixture
def store(db):
    """Initialized alert store in a temporary database."""
    alert_store = AlertStore(db)
    alert_store.initialize()
    return alert_store


@pytest.fixture
def before_bulk_statement(monkeypatch, store):
    """
    Run a write on its own connection just before the store's next UPDATE or
    DELETE statement, the way a concurrent evaluation pass would.
    """
    pending = []
    open_alert_conn = store.db.get_alert_conn

    class InterleavingConnection:
        def __init__(self, conn):
            self._conn = conn

        def __getattr__(self, name):
            return getattr(self._conn, name)

        def __enter__(self):
            self._conn.__enter__()
            return self

        def __exit__(self, *exc_info):
            return self._conn.__exit__(*exc_info)

        def execute(self, sql, *params):
            if pending and sql.lstrip().startswith(("UPDATE", "DELETE")):
                pending.pop()()
            return self._conn.execute(sql, *params)

    @contextmanager
    def get_alert_conn():
        with open_alert_conn() as conn:
            yield InterleavingConnection(conn)

    monkeypatch.setattr(store.db, "get_alert_conn", get_alert_conn)
    return pending.append


@pytest.fixture
def notifier():
    return ChangeNotifier()


@pytest.fixture
def source(notifier):
    return InMemorySnapshotSource(notifier)


@pytest.fixture
def make_engine(source, store, notifier, engine_settings):
    """
    Factory fixture for engines wired to the in-memory source.

    Keyword arguments override the engine's constructor arguments.
    """
    def _make_engine(**overrides) -> NotificationEngine:
        kwargs = {
            "source": source,
            "store": store,
            "notifier": notifier,
            "clock": lambda: NOW,
            "settings": engine_settings,
        }
        kwargs.update(overrides)
        return NotificationEngine(**kwargs)

    return _make_engine


@pytest.fixture
def engine(make_engine):
    return make_engine()

import os
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["AUTO_CREATE_TABLES"] = "false"
for _name in ("ALERT_BOT_TOKEN", "ALERT_CHAT_ID", "META_APP_SECRET", "ADMIN_TOKEN", "OPENAI_API_KEY"):
    os.environ.pop(_name, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from relay_api.database import Base, get_db  # noqa: E402
from relay_api.deps import (  # noqa: E402
    get_completion_service,
    get_dedup_guard,
    get_instagram_service,
    get_session_factory,
)
from relay_api.main import app  # noqa: E402
from relay_api.models import Client  # noqa: E402
from relay_api.services.completion_service import CompletionService  # noqa: E402
from relay_api.services.dedup_guard import DedupGuard  # noqa: E402
from relay_api.services.instagram_service import InstagramService  # noqa: E402
from relay_api.services.result import Result  # noqa: E402

LOCAL_TZ = timezone(timedelta(hours=11))


def local_time(year, month, day, hour, minute=0) -> datetime:
    """Business-local wall time (UTC+11) as an aware datetime."""
    return datetime(year, month, day, hour, minute, tzinfo=LOCAL_TZ)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def add_tenant(db):
    """Insert a tenant row and commit it."""
    counter = {"n": 0}

    def _add(
        tenant_id,
        *,
        domain=None,
        recipient_ids=None,
        config=None,
        status="active",
        created_at=None,
    ):
        counter["n"] += 1
        client = Client(
            id=tenant_id,
            name=tenant_id.title(),
            status=status,
            domain=domain,
            platform_recipient_ids=recipient_ids or [],
            config=config or {},
            created_at=created_at or datetime(2024, 1, counter["n"], tzinfo=timezone.utc),
        )
        db.add(client)
        db.commit()
        return client

    return _add


@pytest.fixture
def guard():
    return DedupGuard(max_size=100)


@pytest.fixture
def fake_completion():
    completion = Mock(spec=CompletionService)
    completion.reply = AsyncMock(return_value="Thanks for reaching out!")

    async def _stream(system_prompt, history):
        for fragment in ["Hel", "lo", "!"]:
            yield fragment

    completion.stream = Mock(side_effect=_stream)
    return completion


@pytest.fixture
def fake_dispatcher():
    dispatcher = Mock(spec=InstagramService)
    dispatcher.send_message = AsyncMock(return_value=Result.success({"message_id": "m_out"}))
    return dispatcher


@pytest.fixture
def client(session_factory, guard, fake_completion, fake_dispatcher):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_dedup_guard] = lambda: guard
    app.dependency_overrides[get_completion_service] = lambda: fake_completion
    app.dependency_overrides[get_instagram_service] = lambda: fake_dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()

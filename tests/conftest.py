from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

_DB_DIR = tempfile.mkdtemp(prefix="projviz-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["AUDIT_ENABLED"] = "false"
os.environ["SYNC_SCHEDULER_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "warning"
os.environ["LOG_FORMAT"] = "text"
os.environ["RETRY_BASE_SECONDS"] = "0.01"
os.environ["RETRY_MAX_SECONDS"] = "0.05"
for _name in ("JIRA_BASE_URL", "JIRA_EMAIL", "JIRA_API_TOKEN", "CORS_ALLOWED_ORIGINS"):
    os.environ[_name] = ""

from projviz.db.base import Base  # noqa: E402
from projviz.db.session import SessionLocal, engine  # noqa: E402
import projviz.models  # noqa: E402,F401
from projviz.models.enums import UserRole  # noqa: E402
from projviz.services.users import create_user  # noqa: E402

DEFAULT_PASSWORD = "correct-horse-42"


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield
    engine.dispose()


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    from fastapi.testclient import TestClient

    from projviz.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def make_user(db):
    def _make(role: UserRole = UserRole.viewer, *, username: str | None = None, email: str | None = None, **kwargs):
        name = username or f"{role.value}-user"
        return create_user(
            db,
            username=name,
            email=email or f"{name}@example.com",
            password=kwargs.pop("password", DEFAULT_PASSWORD),
            role=role,
            **kwargs,
        )

    return _make


@pytest.fixture()
def login_headers(client):
    def _login(email: str, password: str = DEFAULT_PASSWORD) -> dict[str, str]:
        response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture()
def seed_project(db):
    from projviz.models.project import Project

    def _seed(key: str, *, organization_id: int | None = None, name: str | None = None) -> Project:
        project = Project(jira_project_id=f"jp-{key}", key=key, name=name or f"Project {key}", organization_id=organization_id)
        db.add(project)
        db.commit()
        db.refresh(project)
        return project

    return _seed


@pytest.fixture()
def seed_issues(db):
    from projviz.models.enums import DelayStatus, StatusCategory
    from projviz.models.issue import Issue

    def _seed(project, *statuses: DelayStatus, category: StatusCategory = StatusCategory.in_progress, due=None) -> None:
        offset = db.query(Issue).count()
        for index, status in enumerate(statuses, start=offset + 1):
            db.add(
                Issue(
                    jira_issue_id=f"ji-{index}",
                    jira_issue_key=f"{project.key}-{index}",
                    project_id=project.id,
                    summary=f"Issue {index}",
                    status="Working",
                    status_category=category,
                    due_date=due,
                    delay_status=status,
                )
            )
        db.commit()

    return _seed

import os
import unittest
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, delete
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Ensure settings can be initialized in test environments
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.core.security import issue_admin_token
from app.db.session import get_db
from app.main import app
from app.models.data_set import DataSet, DataSetInclude
from app.models.log import Log
from app.models.project_instance import ProjectInstance
from app.models.translation import Translation
from app.services.authorization import AuthorizationService

ROOT_CLAIMS = {"sub": "root-user", "email": "root@example.com", "role": "ROOT"}
EDITOR_CLAIMS = {"sub": "editor-user", "email": "editor@example.com", "role": "EDITOR"}

_TABLES = (Log, ProjectInstance, DataSet, DataSetInclude, Translation)


class DataManagerTestBase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        cls.SessionLocal = sessionmaker(bind=cls.engine, autocommit=False, autoflush=False)
        for model in _TABLES:
            model.__table__.create(bind=cls.engine)

    @classmethod
    def tearDownClass(cls):
        for model in reversed(_TABLES):
            model.__table__.drop(bind=cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.SessionLocal() as db:
            for model in reversed(_TABLES):
                db.execute(delete(model))
            db.commit()
        self.db = self.SessionLocal()

    def tearDown(self):
        self.db.close()

    def authorization(self, claims: dict | None = None, **kwargs) -> AuthorizationService:
        return AuthorizationService(self.db, claims if claims is not None else ROOT_CLAIMS, disabled=False, **kwargs)

    # Seeding helpers

    def add_log(self, db=None, **fields) -> Log:
        db = db or self.db
        values = {"log_type": "Webhook", "action": "Send", "status": "Succeeded"}
        values.update(fields)
        log = Log(id=uuid4(), **values)
        db.add(log)
        db.commit()
        return log

    def add_data_set(self, name: str, allowed: list[str] | None = None, cultures: list[str] | None = None, db=None) -> DataSet:
        db = db or self.db
        data_set = DataSet(
            id=uuid4(),
            name=name,
            allowed_identity_ids=list(allowed or []),
            available_cultures=list(cultures or []),
            webhook_urls=[],
        )
        db.add(data_set)
        db.commit()
        return data_set

    def include(self, parent: DataSet, *children: DataSet, db=None) -> None:
        db = db or self.db
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for index, child in enumerate(children):
            db.add(
                DataSetInclude(
                    parent_data_set_id=parent.id,
                    included_data_set_id=child.id,
                    created_at=base + timedelta(seconds=index),
                )
            )
        db.commit()

    def add_translation(self, data_set: DataSet | None, name: str, content: str | None = None, db=None, **fields) -> Translation:
        db = db or self.db
        values = {
            "resource_name": "Common",
            "translation_name": name,
            "culture_name": "en-US",
            "content": content if content is not None else name,
            "data_set_id": data_set.id if data_set is not None else None,
        }
        values.update(fields)
        translation = Translation(id=uuid4(), **values)
        db.add(translation)
        db.commit()
        return translation


class ApiTestBase(DataManagerTestBase):
    def setUp(self):
        super().setUp()

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        self.client.close()
        app.dependency_overrides.clear()
        super().tearDown()

    @staticmethod
    def _auth_headers(role: str, sub: str | None = None, email: str | None = None) -> dict[str, str]:
        token = issue_admin_token(str(sub or uuid4()), role, email or f"{role.lower()}@example.com")
        return {"Authorization": f"Bearer {token}"}

    @staticmethod
    def _uuid(value: str) -> UUID:
        return UUID(value)

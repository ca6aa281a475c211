"""
Shared fixtures: an in-memory SQLite database, users, and an authenticated
TestClient with get_db overridden.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "casechron-test-signing-key-0123456789abcdef")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("S3_BUCKET_NAME", "casechron-test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import uuid  # noqa: E402
from datetime import datetime  # noqa: E402

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from casechron.core.config import settings  # noqa: E402
from casechron.db.database import Base, get_db  # noqa: E402
from casechron.db.models import Case, Document, User  # noqa: E402
from casechron.main import app  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


def make_user(db, email: str) -> User:
    user = User(email=email, full_name=email.split("@")[0].title())
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_case(db, owner: User, name: str = "Smith v. Jones", **fields) -> Case:
    case = Case(user_id=owner.id, name=name, **fields)
    db.add(case)
    db.commit()
    db.refresh(case)
    return case


def make_document(db, case: Case, filename: str = "email.txt", content: str = "Body") -> Document:
    document = Document(
        case_id=case.id,
        filename=filename,
        file_type="text/plain",
        file_size=len(content),
        s3_key=f"cases/{case.id}/documents/{uuid.uuid4().hex}_{filename}",
        s3_bucket=settings.S3_BUCKET_NAME,
        content=content,
        doc_metadata={"originalName": filename, "uploadedAt": datetime.utcnow().isoformat() + "Z"},
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    return document


def auth_headers(user: User) -> dict:
    token = jwt.encode({"sub": str(user.id)}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def owner(db):
    return make_user(db, "attorney@example.com")


@pytest.fixture
def outsider(db):
    return make_user(db, "outsider@example.com")


@pytest.fixture
def case(db, owner):
    return make_case(
        db,
        owner,
        context="Breach of a commercial lease",
        key_parties="Smith (landlord), Jones (tenant)",
        instructions="Flag every rent payment",
    )


@pytest.fixture
def client(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

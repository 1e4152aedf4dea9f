import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models
from db import Base, get_db
from main import app

SWISS_PHONE = "+41791234567"
KOSOVO_PHONE = "+38344123456"


@pytest.fixture()
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


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def add_file(db):
    def _add(user_id, conversation_id, name="return.pdf", size=1024):
        f = models.File(
            user_id=user_id,
            conversation_id=conversation_id,
            file_name=name,
            file_type="application/pdf",
            file_size=size,
            storage_id=f"storage-{name}",
        )
        db.add(f)
        db.commit()
        db.refresh(f)
        return f

    return _add

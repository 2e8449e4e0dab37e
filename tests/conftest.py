"""Pytest configuration and shared fixtures."""

from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from access_service.core.crypto import SecretCipher
from access_service.core.facade import AccessFacade
from access_service.db.database import build_engine, init_db
from access_service.db.models import Project

TEST_ENCRYPTION_SECRET = "test-encryption-secret"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database per test, foreign keys enforced."""
    test_engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def cipher() -> SecretCipher:
    return SecretCipher(TEST_ENCRYPTION_SECRET)


@pytest.fixture
def facade(db_session: Session, cipher: SecretCipher) -> AccessFacade:
    return AccessFacade(db_session, cipher)


@pytest.fixture
def project(facade: AccessFacade) -> Project:
    """An active project owned by ``owner-1``."""
    return facade.projects.create_project("owner-1", "Payments", "payments")


@pytest.fixture
def other_project(facade: AccessFacade) -> Project:
    return facade.projects.create_project("owner-2", "Billing", "billing")

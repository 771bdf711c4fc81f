# flake8: noqa
import sys
from pathlib import Path

# Ensure project root is on sys.path so `recipe_keeper` can be imported when tests are run
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))  # noqa: E402

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient  # noqa: E402

from recipe_keeper import app as app_module
from recipe_keeper.auth import Principal, TokenVerifier
from recipe_keeper.config import Settings
from recipe_keeper.db import Base, init_db
from recipe_keeper.errors import Unauthenticated


ALICE = Principal(id="user-alice", email="alice@example.com")
BOB = Principal(id="user-bob", email="bob@example.com")

TOKENS = {
    "alice-token": ALICE,
    "bob-token": BOB,
    "no-id-token": Principal(id="", email="ghost@example.com"),
}


def auth(token):
    return {"Authorization": f"Bearer {token}"}


class FakeVerifier(TokenVerifier):
    """Stands in for the identity provider: known tokens map to principals."""

    def __init__(self):
        self.calls = []

    def verify(self, token):
        self.calls.append(token)
        if token not in TOKENS:
            raise Unauthenticated("Invalid or expired token", "invalid JWT")
        return TOKENS[token]


@pytest.fixture
def session_factory():
    # Use StaticPool so the same in-memory database is shared across connections
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def api(session_factory, verifier):
    settings = Settings(supabase_url="http://auth.test", supabase_key="anon-key")
    application = app_module.create_app(settings, verifier=verifier)

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[app_module.get_db] = override_get_db
    return application


@pytest.fixture
def client(api):
    return TestClient(api)


@pytest.fixture
def soup():
    return {
        "title": "Soup",
        "prep_time": 10,
        "cook_time": 20,
        "servings": 4,
        "difficulty": "easy",
        "ingredients": [{"name": "Salt", "amount": 1, "unit": "tsp"}],
    }

"""
Fixtures partagées : client FastAPI avec dépendances surchargées par les
doubles de fakes.py.
"""
import pytest
from fastapi.testclient import TestClient

from cotizador.config import settings
from cotizador.services.session_reconciler import ACCESS_TOKEN_COOKIE

from fakes import TEST_JWT_SECRET, FakeIdentityProvider, FakeStore, mint_token, user_doc


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "SUPABASE_URL", "")
    monkeypatch.setattr(settings, "ENV", "test")
    monkeypatch.setattr(settings, "APP_BASE_URL", "http://app.local")
    return settings


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def provider():
    return FakeIdentityProvider()


@pytest.fixture
def archiver():
    return None


@pytest.fixture
def client(store, provider, archiver):
    from cotizador import deps
    from cotizador.main import app

    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_optional_store] = lambda: store
    app.dependency_overrides[deps.get_identity_provider] = lambda: provider
    app.dependency_overrides[deps.get_optional_identity_provider] = lambda: provider
    app.dependency_overrides[deps.get_archiver] = lambda: archiver

    yield TestClient(app, follow_redirects=False)

    app.dependency_overrides.clear()


@pytest.fixture
def login_as(client, store):
    """Crée la fiche Cosmos et pose le cookie d'accès Supabase."""

    def _login(email, role="CONSULTOR", name="", user_id=None):
        user_id = user_id or f"sb-{email.split('@')[0]}"
        store.users.docs[email] = user_doc(email, role=role, name=name, user_id=user_id)
        client.cookies.set(ACCESS_TOKEN_COOKIE, mint_token(user_id, email, name), domain="testserver.local")
        return user_id

    return _login

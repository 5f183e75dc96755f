import pytest
from fastapi import Security
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.testclient import TestClient

from app.core.dependencies import get_auth_service, get_current_user_id, security
from app.core.rate_limiter import RateLimiter
from app.database.supabase_client import get_supabase
from app.main import app
from app.modules.auth.service import AuthService, clear_auth_cache
from app.modules.profiles.service import ProfileService
from app.modules.users.routes import get_user_admin_service
from app.modules.users.service import UserAdminService
from tests.conftest import FakeAuth, FakeSupabase, add_profile


def _user_from_token(credentials: HTTPAuthorizationCredentials = Security(security)) -> dict:
    # Tests use the user id as bearer token.
    user_id = credentials.credentials
    return {"id": user_id, "email": f"{user_id}@example.com", "user_metadata": {}}


@pytest.fixture
def api_db():
    db = FakeSupabase(auth=FakeAuth())
    add_profile(db, "bob", is_admin=True, display_name="Bob")
    add_profile(db, "alice", display_name="Alice")
    return db


@pytest.fixture
def client(api_db):
    app.dependency_overrides[get_supabase] = lambda: api_db
    app.dependency_overrides[get_current_user_id] = _user_from_token
    app.dependency_overrides[get_auth_service] = lambda: AuthService(api_db, ProfileService(api_db))
    app.dependency_overrides[get_user_admin_service] = lambda: UserAdminService(api_db, ProfileService(api_db))
    app.state.action_limiter = RateLimiter()
    app.state.limiter.reset()
    clear_auth_cache()
    yield TestClient(app)
    app.dependency_overrides.clear()


def as_user(user_id: str) -> dict:
    return {"Authorization": f"Bearer {user_id}"}

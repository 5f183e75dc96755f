from fastapi.security import HTTPAuthorizationCredentials

from app.database import supabase_client
from app.database.supabase_client import SupabaseClient, get_supabase


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, url, key, options=None):
        self.calls.append((url, key, options))
        return object()


def test_user_client_carries_the_callers_token(monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(supabase_client, "create_client", recorder)
    SupabaseClient.create_user_client("user-jwt")
    _, _, options = recorder.calls[0]
    assert options.headers["Authorization"] == "Bearer user-jwt"
    assert options.persist_session is False
    assert options.auto_refresh_token is False


def test_each_request_gets_its_own_client(monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(supabase_client, "create_client", recorder)
    first = get_supabase(HTTPAuthorizationCredentials(scheme="Bearer", credentials="alice-jwt"))
    second = get_supabase(HTTPAuthorizationCredentials(scheme="Bearer", credentials="bob-jwt"))
    assert first is not second
    tokens = [options.headers["Authorization"] for _, _, options in recorder.calls]
    assert tokens == ["Bearer alice-jwt", "Bearer bob-jwt"]


def test_session_clients_are_never_shared(monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr(supabase_client, "create_client", recorder)
    assert SupabaseClient.create_session_client() is not SupabaseClient.create_session_client()
    assert all(options.persist_session is False for _, _, options in recorder.calls)


def test_without_token_the_shared_anon_client_is_used(monkeypatch):
    shared = object()
    monkeypatch.setattr(SupabaseClient, "_client", shared)
    assert get_supabase(None) is shared

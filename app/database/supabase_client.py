"""
Supabase client access.

Data queries run on a client bound to the caller's access token, so row-level
security evaluates the acting user. Sign-in and sign-up run on throwaway
clients: a session stored on a shared client would rewrite its Authorization
header for every later request. The service-role client bypasses RLS and is
reserved for profile bootstrap, token revocation and the auth admin API
(user lookups, email changes).
"""
from typing import Optional

from fastapi import Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import create_client, Client, ClientOptions
from app.config import settings

optional_bearer = HTTPBearer(auto_error=False)


def _stateless_options() -> ClientOptions:
    return ClientOptions(persist_session=False, auto_refresh_token=False)


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """Shared anon client. Never sign in on it."""
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key, _stateless_options())
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; falls back to the anon client when no key is configured."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = create_client(
                settings.supabase_url, settings.supabase_service_role_key, _stateless_options()
            )
        return cls._service_client or cls.get_client()

    @classmethod
    def create_user_client(cls, access_token: str) -> Client:
        """New client whose PostgREST calls carry the user's JWT"""
        options = _stateless_options()
        options.headers["Authorization"] = f"Bearer {access_token}"
        return create_client(settings.supabase_url, settings.supabase_key, options)

    @classmethod
    def create_session_client(cls) -> Client:
        """New anon client for sign-in/sign-up; its session dies with it"""
        return create_client(settings.supabase_url, settings.supabase_key, _stateless_options())

    @classmethod
    def has_service_role(cls) -> bool:
        return bool(settings.supabase_service_role_key)

    @classmethod
    def reset_client(cls):
        cls._client = None
        cls._service_client = None


def get_supabase(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_bearer),
) -> Client:
    """Client scoped to the bearer token of the request, anon client without one"""
    if credentials is None:
        return SupabaseClient.get_client()
    return SupabaseClient.create_user_client(credentials.credentials)


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()

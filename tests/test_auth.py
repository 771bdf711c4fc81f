# flake8: noqa
import httpx
import pytest

from recipe_keeper.auth import Principal, SupabaseTokenVerifier, authenticate
from recipe_keeper.errors import Forbidden, IdentityProviderError, Unauthenticated

from conftest import FakeVerifier


def provider(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_authenticate_checks_header_in_order():
    verifier = FakeVerifier()
    with pytest.raises(Unauthenticated, match="No authorization header provided"):
        authenticate(None, verifier)
    with pytest.raises(Unauthenticated, match="Invalid authorization header format"):
        authenticate("Basic dXNlcjpwYXNz", verifier)
    with pytest.raises(Unauthenticated, match="No token provided"):
        authenticate("Bearer ", verifier)
    # nothing reached the provider
    assert verifier.calls == []


def test_authenticate_returns_principal():
    principal = authenticate("Bearer alice-token", FakeVerifier())
    assert principal == Principal(id="user-alice", email="alice@example.com")


def test_authenticate_rejects_principal_without_id():
    with pytest.raises(Forbidden) as info:
        authenticate("Bearer no-id-token", FakeVerifier())
    assert info.value.status_code == 403


def test_supabase_verifier_sends_key_and_token():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["apikey"] = request.headers["apikey"]
        seen["authorization"] = request.headers["Authorization"]
        return httpx.Response(200, json={"id": "user-1", "email": "cook@example.com"})

    verifier = SupabaseTokenVerifier("https://project.supabase.co/", "anon-key", http=provider(handler))
    principal = verifier.verify("abc.def.ghi")

    assert principal == Principal(id="user-1", email="cook@example.com")
    assert seen == {
        "url": "https://project.supabase.co/auth/v1/user",
        "apikey": "anon-key",
        "authorization": "Bearer abc.def.ghi",
    }


def test_supabase_verifier_rejected_token():
    def handler(request):
        return httpx.Response(401, json={"code": 401, "msg": "invalid JWT: token is expired"})

    verifier = SupabaseTokenVerifier("https://project.supabase.co", "anon-key", http=provider(handler))
    with pytest.raises(Unauthenticated) as info:
        verifier.verify("expired")
    assert info.value.message == "Invalid or expired token"
    assert info.value.details == "invalid JWT: token is expired"


def test_supabase_verifier_unreachable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    verifier = SupabaseTokenVerifier("https://project.supabase.co", "anon-key", http=provider(handler))
    with pytest.raises(IdentityProviderError) as info:
        verifier.verify("abc")
    assert info.value.status_code == 500
    assert info.value.to_envelope()["error"]["message"] == "Token verification failed"


def test_supabase_verifier_user_without_id_reaches_forbidden():
    def handler(request):
        return httpx.Response(200, json={"email": "ghost@example.com"})

    verifier = SupabaseTokenVerifier("https://project.supabase.co", "anon-key", http=provider(handler))
    with pytest.raises(Forbidden, match="User not found"):
        authenticate("Bearer abc", verifier)


def test_supabase_verifier_provider_outage_is_not_a_bad_token():
    def handler(request):
        return httpx.Response(503, json={"message": "upstream unavailable"})

    verifier = SupabaseTokenVerifier("https://project.supabase.co", "anon-key", http=provider(handler))
    with pytest.raises(IdentityProviderError) as info:
        verifier.verify("abc")
    assert info.value.status_code == 500
    assert info.value.details == "upstream unavailable"

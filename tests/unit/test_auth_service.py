from types import SimpleNamespace

from storefront.auth import service as auth_service
from storefront.auth.models import determine_role, make_auth_response

def test_determine_role():
    assert determine_role({"role": "ADMIN"}) == "admin"
    assert determine_role({}, {"role": "admin"}) == "admin"
    assert determine_role(None) == "user"

def test_make_auth_response_without_session():
    res = make_auth_response(SimpleNamespace(session=None, user=None), fallback_error="nope")
    assert res.success is False
    assert res.error == "nope"

def test_login_success(monkeypatch):
    session = SimpleNamespace(access_token="at", refresh_token="rt")
    user = SimpleNamespace(id="u1", email="u1@example.com", user_metadata={"full_name": "U"})
    monkeypatch.setattr(auth_service, "sign_in_password", lambda e, p: SimpleNamespace(session=session, user=user))
    res = auth_service.login(" u1@example.com ", "pw")
    assert res.success is True
    assert res.access_token == "at"
    assert res.user["role"] == "user"

def test_login_exception_is_normalized(monkeypatch):
    def boom(e, p):
        raise RuntimeError("Invalid login credentials")

    monkeypatch.setattr(auth_service, "sign_in_password", boom)
    res = auth_service.login("u1@example.com", "bad")
    assert res.success is False
    assert "Invalid login credentials" in res.error

def test_get_user_from_token_merges_profile(monkeypatch):
    monkeypatch.setattr(
        auth_service, "_repo_get_user_from_token",
        lambda token: {"id": "u1", "email": "u1@example.com", "user_metadata": {"full_name": "Meta"}},
    )
    monkeypatch.setattr(auth_service, "get_user_profile", lambda uid: {"phone": "37001234", "is_union_plus": True, "role": "admin"})
    user = auth_service.get_user_from_token("tok")
    assert user == {
        "id": "u1",
        "email": "u1@example.com",
        "phone": "37001234",
        "full_name": "Meta",
        "metadata": {"full_name": "Meta"},
        "role": "admin",
        "is_union_plus": True,
        "token": "tok",
    }

from types import SimpleNamespace

import pytest

import set_admin_claim


@pytest.fixture
def firebase(monkeypatch):
    state = {"claims": {}}

    def get_user_by_email(email, app=None):
        if email != "ops@example.com":
            raise set_admin_claim.auth.UserNotFoundError("no user")
        return SimpleNamespace(uid="uid-ops", custom_claims={"tier": "gold"})

    def set_custom_user_claims(uid, claims, app=None):
        state["claims"][uid] = claims

    monkeypatch.setattr(set_admin_claim, "get_firebase_app", lambda: None)
    monkeypatch.setattr(set_admin_claim.auth, "get_user_by_email", get_user_by_email)
    monkeypatch.setattr(set_admin_claim.auth, "set_custom_user_claims", set_custom_user_claims)
    return state


def test_grants_admin_and_keeps_other_claims(firebase):
    assert set_admin_claim.set_admin_claim("ops@example.com") is True
    assert firebase["claims"]["uid-ops"] == {"tier": "gold", "admin": True}


def test_revoke(firebase):
    assert set_admin_claim.main(["ops@example.com", "--revoke"]) == 0
    assert firebase["claims"]["uid-ops"] == {"tier": "gold"}


def test_unknown_user(firebase):
    assert set_admin_claim.main(["ghost@example.com"]) == 1
    assert firebase["claims"] == {}


def test_usage(firebase):
    assert set_admin_claim.main([]) == 1

# test/test_auth.py
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from crudforge.api.auth import InMemoryTokenStore, RequireToken, TokenDetail, issue_token
from crudforge.core.pipeline import StageRole


@pytest.fixture()
def store():
    return InMemoryTokenStore()


def test_issue_and_lookup(store):
    token = issue_token(store, "42", "admin", ttl=timedelta(minutes=5))

    detail = store.get(token)
    assert detail.user_id == "42"
    assert detail.user_type == "admin"
    assert not detail.expired()
    assert store.tokens_of_user("42", "admin") == [token]
    assert store.tokens_of_user("42", "guest") == []


def test_expired_tokens_are_dropped(store):
    token = issue_token(store, "42", ttl=-1)
    assert store.tokens_of_user("42", "") == []
    assert store.get(token) is None


def test_delete(store):
    token = issue_token(store, "42")
    store.delete(token)
    assert store.get(token) is None


def test_token_without_expiry():
    assert not TokenDetail(token="t", user_id="u").expired()


@pytest.fixture()
def guarded_client(fake_forge, store):
    resource = fake_forge.resource("user")
    pipeline = resource.pipeline_for("list").replace(StageRole.PRE_PROCESS, RequireToken(store))
    resource.add_route("secure", "GET", "/secure", pipeline)
    fake_forge.generate_routes()

    return TestClient(fake_forge.app)


def test_missing_token_is_rejected(guarded_client):
    r = guarded_client.get("/res/secure")
    assert r.status_code == 403
    assert r.json() == {"code": 403, "message": "unauthorized!", "data": None}


def test_unknown_token_is_rejected(guarded_client):
    r = guarded_client.get("/res/secure", headers={"token": "nope"})
    assert r.status_code == 403


def test_valid_token_passes(guarded_client, store, recorder):
    token = issue_token(store, "42")
    r = guarded_client.get("/res/secure", headers={"token": token})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["total"] == 1
    # The stock routes stay open
    assert guarded_client.get("/res").status_code == 200

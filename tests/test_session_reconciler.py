"""Tests de réconciliation cookies / session Supabase."""

import pytest
from azure.cosmos import exceptions

from cotizador.services.identity_provider import ProviderUser
from cotizador.services.session_reconciler import (
    COOKIE_ROLE,
    COOKIE_USER,
    COOKIE_USER_ID,
    DegradedFallback,
    Identity,
    RepairedFromStore,
    Synced,
    Unauthenticated,
    cookie_writes,
    cookies_to_clear,
    reconcile,
    state_tag,
)

from fakes import mint_token, user_doc

PROVIDER = ProviderUser(id="sb-ana", email="ana@acme.io", name="Ana")
FULL_COOKIES = {COOKIE_ROLE: "ADMIN", COOKIE_USER: "Ana%20Mar%C3%ADa", COOKIE_USER_ID: "sb-ana"}


def no_lookup(email):
    raise AssertionError("aucune lecture attendue")


class TestUnauthenticated:
    @pytest.mark.parametrize("cookies", [{}, FULL_COOKIES, {COOKIE_ROLE: "ADMIN"}])
    def test_cookies_alone_never_authorize(self, cookies):
        result = reconcile(None, cookies, no_lookup, "CONSULTOR")
        assert isinstance(result, Unauthenticated)
        assert state_tag(result) == "unauthenticated"

    def test_present_cookies_are_cleared(self):
        cookies = dict(FULL_COOKIES, **{"sb-access-token": "expired"})
        result = reconcile(None, cookies, no_lookup, "CONSULTOR")
        assert sorted(cookies_to_clear(result, cookies)) == sorted(
            [COOKIE_ROLE, COOKIE_USER, COOKIE_USER_ID, "sb-access-token"]
        )
        assert cookie_writes(result) == {}


class TestSynced:
    def test_consistent_cookies_read_without_store(self):
        result = reconcile(PROVIDER, FULL_COOKIES, no_lookup, "CONSULTOR")
        assert isinstance(result, Synced)
        assert result.identity == Identity("sb-ana", "Ana María", "ADMIN", "ana@acme.io")

    def test_idempotent_no_writes(self):
        first = reconcile(PROVIDER, FULL_COOKIES, no_lookup, "CONSULTOR")
        second = reconcile(PROVIDER, FULL_COOKIES, no_lookup, "CONSULTOR")
        assert first == second
        assert cookie_writes(first) == {}
        assert cookies_to_clear(first, FULL_COOKIES) == []


class TestDesynced:
    @pytest.mark.parametrize("cookies", [
        {},
        {COOKIE_ROLE: "ADMIN", COOKIE_USER: "Ana"},
        dict(FULL_COOKIES, **{COOKIE_USER_ID: "someone-else"}),
    ])
    def test_repairs_from_store(self, cookies):
        seen = []

        def lookup(email):
            seen.append(email)
            return user_doc("ana@acme.io", role="ADMIN", name="Ana Pérez", user_id="sb-ana")

        result = reconcile(PROVIDER, cookies, lookup, "CONSULTOR")
        assert isinstance(result, RepairedFromStore)
        assert seen == ["ana@acme.io"]
        assert cookie_writes(result) == {
            COOKIE_ROLE: "ADMIN",
            COOKIE_USER: "Ana%20P%C3%A9rez",
            COOKIE_USER_ID: "sb-ana",
        }

    def test_missing_role_defaults(self):
        doc = user_doc("ana@acme.io", name="Ana")
        doc["role"] = None
        result = reconcile(PROVIDER, {}, lambda e: doc, "CONSULTOR")
        assert result.identity.role == "CONSULTOR"

    def test_store_failure_degrades_without_writes(self):
        def broken(email):
            raise exceptions.CosmosHttpResponseError(status_code=503, message="down")

        result = reconcile(PROVIDER, {}, broken, "CONSULTOR")
        assert isinstance(result, DegradedFallback)
        assert result.reason == "store_unavailable"
        assert result.identity == Identity("sb-ana", "Ana", "CONSULTOR", "ana@acme.io")
        assert cookie_writes(result) == {}
        assert cookies_to_clear(result, {}) == []

    def test_missing_record_degrades(self):
        result = reconcile(PROVIDER, {}, lambda e: None, "CONSULTOR")
        assert isinstance(result, DegradedFallback)
        assert result.reason == "record_missing"

    def test_degraded_name_falls_back_to_email(self):
        anonymous = ProviderUser(id="sb-x", email="x.y@acme.io")
        result = reconcile(anonymous, {}, lambda e: None, "CONSULTOR")
        assert result.identity.name == "x.y"

    def test_disabled_account_gets_no_access(self):
        doc = user_doc("ana@acme.io", active=False)
        result = reconcile(PROVIDER, {}, lambda e: doc, "CONSULTOR")
        assert isinstance(result, Unauthenticated)


class TestSessionEndpoint:
    def test_me_without_session_is_401_and_clears_cookies(self, client):
        client.cookies.set(COOKIE_ROLE, "ADMIN")
        r = client.get("/auth/me")
        assert r.status_code == 401
        set_cookie = " ".join(r.headers.get_list("set-cookie"))
        assert f"{COOKIE_ROLE}=" in set_cookie

    def test_me_repairs_then_syncs(self, client, login_as):
        login_as("ana@acme.io", role="ADMIN", name="Ana")
        r = client.get("/auth/me")
        assert r.status_code == 200
        assert r.json()["state"] == "repaired"
        assert r.json()["identity"]["role"] == "ADMIN"
        assert len(r.headers.get_list("set-cookie")) == 3

        r = client.get("/auth/me")
        assert r.json()["state"] == "synced"
        assert r.headers.get_list("set-cookie") == []

    def test_me_degraded_when_store_down(self, client, store, login_as):
        login_as("ana@acme.io", name="Ana")
        store.users.fail_with = exceptions.CosmosHttpResponseError(status_code=503, message="down")
        r = client.get("/auth/me")
        assert r.status_code == 200
        assert r.json()["state"] == "degraded"
        assert r.json()["identity"]["role"] == "CONSULTOR"
        assert r.headers.get_list("set-cookie") == []

    def test_invalid_token_counts_as_no_session(self, client, store):
        store.users.docs["ana@acme.io"] = user_doc("ana@acme.io", role="ADMIN", user_id="sb-ana")
        client.cookies.set("sb-access-token", "not-a-jwt")
        client.cookies.set(COOKIE_ROLE, "ADMIN")
        client.cookies.set(COOKIE_USER, "Ana")
        client.cookies.set(COOKIE_USER_ID, "sb-ana")
        assert client.get("/auth/me").status_code == 401

    def test_bearer_header_accepted(self, client, store):
        store.users.docs["ana@acme.io"] = user_doc("ana@acme.io", user_id="sb-ana")
        token = mint_token("sb-ana", "ana@acme.io")
        r = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 200
        assert r.json()["identity"]["id"] == "sb-ana"

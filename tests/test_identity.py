"""Tests for the identity providers."""
import base64
import json

import httpx
import pytest

from services.identity import (
    IdentityError,
    LocalIdentityProvider,
    RestIdentityProvider,
)
from store import DocumentStore


def _fake_jwt(claims: dict) -> str:
    def part(obj) -> str:
        raw = base64.urlsafe_b64encode(json.dumps(obj).encode()).decode()
        return raw.rstrip("=")
    return f"{part({'alg': 'none'})}.{part(claims)}.sig"


# ===========================================================================
# LocalIdentityProvider
# ===========================================================================

class TestLocalIdentity:
    async def test_anonymous_session(self, identity: LocalIdentityProvider):
        session = await identity.sign_in_anonymously()
        assert session.user_id
        assert session.is_anonymous is True

    async def test_anonymous_id_is_stable_per_client(self, identity: LocalIdentityProvider):
        first = await identity.sign_in_anonymously()
        second = await identity.sign_in_anonymously()
        assert first.user_id == second.user_id

    async def test_anonymous_id_survives_restart(self, tmp_path):
        db_file = tmp_path / "id.db"
        s1 = DocumentStore(db_file)
        first = await LocalIdentityProvider(s1).sign_in_anonymously()
        await s1.close()

        s2 = DocumentStore(db_file)
        second = await LocalIdentityProvider(s2).sign_in_anonymously()
        await s2.close()
        assert first.user_id == second.user_id

    async def test_token_sign_in(self, identity: LocalIdentityProvider):
        token = await identity.issue_token()
        session = await identity.sign_in_with_token(token)
        assert session.is_anonymous is False
        assert session.id_token == token

    async def test_issue_token_for_existing_user(self, identity: LocalIdentityProvider, store):
        user_id = await store.create_identity(is_anonymous=False)
        token = await identity.issue_token(user_id)
        session = await identity.sign_in_with_token(token)
        assert session.user_id == user_id

    async def test_issue_token_for_unknown_user(self, identity: LocalIdentityProvider):
        with pytest.raises(IdentityError):
            await identity.issue_token("ghost")

    async def test_rejected_token(self, identity: LocalIdentityProvider):
        with pytest.raises(IdentityError):
            await identity.sign_in_with_token("bogus")

    async def test_resolve_prefers_token(self, identity: LocalIdentityProvider):
        token = await identity.issue_token()
        session = await identity.resolve(token)
        assert session.is_anonymous is False

    async def test_resolve_without_token_is_anonymous(self, identity: LocalIdentityProvider):
        session = await identity.resolve(None)
        assert session.is_anonymous is True

    async def test_resolve_bad_token_does_not_fall_back(self, identity: LocalIdentityProvider):
        with pytest.raises(IdentityError):
            await identity.resolve("bogus")

    async def test_closed_store_becomes_identity_error(self):
        s = DocumentStore(":memory:")
        await s.init_db()
        await s.close()
        with pytest.raises(IdentityError):
            await LocalIdentityProvider(s).sign_in_anonymously()


# ===========================================================================
# RestIdentityProvider
# ===========================================================================

class RecordingHandler:
    def __init__(self, responder):
        self.requests = []
        self.responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)


def _provider(handler) -> RestIdentityProvider:
    return RestIdentityProvider(
        api_key="test-key",
        base_url="https://identity.test/v1/",
        transport=httpx.MockTransport(handler),
    )


class TestRestIdentity:
    async def test_anonymous_sign_up(self):
        handler = RecordingHandler(
            lambda req: httpx.Response(200, json={"idToken": "tok", "localId": "uid-1"})
        )
        session = await _provider(handler).sign_in_anonymously()

        assert session.user_id == "uid-1"
        assert session.is_anonymous is True
        assert session.id_token == "tok"
        req = handler.requests[0]
        assert req.url.path == "/v1/accounts:signUp"
        assert req.url.params["key"] == "test-key"
        assert json.loads(req.content) == {"returnSecureToken": True}

    async def test_custom_token_reads_user_from_id_token(self):
        id_token = _fake_jwt({"user_id": "uid-42", "sub": "uid-42"})
        handler = RecordingHandler(
            lambda req: httpx.Response(200, json={"idToken": id_token, "refreshToken": "r"})
        )
        session = await _provider(handler).sign_in_with_token("custom")

        assert session.user_id == "uid-42"
        assert session.is_anonymous is False
        body = json.loads(handler.requests[0].content)
        assert body == {"token": "custom", "returnSecureToken": True}
        assert handler.requests[0].url.path == "/v1/accounts:signInWithCustomToken"

    async def test_http_error_message_surfaces(self):
        handler = RecordingHandler(
            lambda req: httpx.Response(400, json={"error": {"message": "INVALID_CUSTOM_TOKEN"}})
        )
        with pytest.raises(IdentityError, match="INVALID_CUSTOM_TOKEN"):
            await _provider(handler).sign_in_with_token("bad")

    async def test_transport_error(self):
        def fail(req):
            raise httpx.ConnectError("offline", request=req)

        with pytest.raises(IdentityError, match="unreachable"):
            await _provider(RecordingHandler(fail)).sign_in_anonymously()

    async def test_missing_user_id(self):
        handler = RecordingHandler(lambda req: httpx.Response(200, json={}))
        with pytest.raises(IdentityError):
            await _provider(handler).sign_in_anonymously()

    async def test_malformed_id_token(self):
        handler = RecordingHandler(lambda req: httpx.Response(200, json={"idToken": "garbage"}))
        with pytest.raises(IdentityError):
            await _provider(handler).sign_in_with_token("custom")

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            RestIdentityProvider(api_key="")

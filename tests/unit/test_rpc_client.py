"""
Unit tests for the RPC client.
"""

import pytest
import pytest_asyncio
from httpx import ConnectError, Request, Response, TimeoutException

from config import Settings
from studyloop.api.rpc_client import RpcClient, RpcError


@pytest_asyncio.fixture
async def client():
    """RPC client with no backoff delay."""
    client = RpcClient(
        base_url="http://localhost:54321/rest/v1",
        api_key="anon-key",
        timeout_ms=5000,
        retry_attempts=3,
        backoff_seconds=0,
    )
    yield client
    await client.close()


def fake_post(responses, calls):
    """Return queued responses (or raise queued exceptions) in order."""
    async def mock_post(url, **kwargs):
        calls.append((url, kwargs))
        outcome = responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        status, body = outcome
        request = Request("POST", f"http://localhost:54321/rest/v1{url}")
        if body is None:
            return Response(status, request=request)
        return Response(status, json=body, request=request)
    return mock_post


class TestHeaders:

    def test_anon_key_used_as_bearer_without_token(self, client):
        assert client.client.headers["apikey"] == "anon-key"
        assert client.client.headers["Authorization"] == "Bearer anon-key"

    @pytest.mark.asyncio
    async def test_access_token_used_as_bearer(self):
        rpc = RpcClient("http://x/rest/v1", "anon-key", access_token="user-jwt")
        assert rpc.client.headers["Authorization"] == "Bearer user-jwt"
        await rpc.close()

    @pytest.mark.asyncio
    async def test_from_settings(self):
        settings = Settings(supabase_url="https://proj.example.co/", supabase_anon_key="k", rpc_retry_attempts=5)
        rpc = RpcClient.from_settings(settings)
        assert rpc.base_url == "https://proj.example.co/rest/v1"
        assert rpc.retry_attempts == 5
        await rpc.close()


class TestCall:

    @pytest.mark.asyncio
    async def test_posts_params_to_procedure(self, client, monkeypatch):
        calls = []
        monkeypatch.setattr(client.client, "post", fake_post([(200, {"ok": True})], calls))

        result = await client.call("c_clone_set", {"p_set_id": "s1"})

        assert result == {"ok": True}
        assert calls == [("/rpc/c_clone_set", {"json": {"p_set_id": "s1"}})]

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self, client, monkeypatch):
        monkeypatch.setattr(client.client, "post", fake_post([(204, None)], []))
        assert await client.call("c_delete_set", {"p_set_id": "s1"}) is None

    @pytest.mark.asyncio
    async def test_error_body_parsed(self, client, monkeypatch):
        body = {"code": "P0001", "message": "Not allowed", "details": None, "hint": "Sign in first"}
        monkeypatch.setattr(client.client, "post", fake_post([(400, body)], []))

        with pytest.raises(RpcError) as exc_info:
            await client.call("c_delete_set", {"p_set_id": "s1"}, idempotent=True)

        error = exc_info.value
        assert error.message == "Not allowed"
        assert error.code == "P0001"
        assert error.hint == "Sign in first"
        assert error.status_code == 400
        assert error.procedure == "c_delete_set"
        assert error.is_transient is False

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self, client, monkeypatch):
        calls = []
        monkeypatch.setattr(client.client, "post", fake_post([(404, {"message": "nope"})], calls))
        with pytest.raises(RpcError):
            await client.call("c_get_set_for_play", {}, idempotent=True)
        assert len(calls) == 1


class TestRetry:

    @pytest.mark.asyncio
    async def test_idempotent_call_retries_timeout(self, client, monkeypatch):
        calls = []
        responses = [TimeoutException("Timeout"), (200, [1, 2])]
        monkeypatch.setattr(client.client, "post", fake_post(responses, calls))

        assert await client.call("c_get_home_dashboard", idempotent=True) == [1, 2]
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_idempotent_call_retries_server_error(self, client, monkeypatch):
        calls = []
        responses = [(503, {"message": "busy"}), (502, {"message": "busy"}), (200, {"id": 1})]
        monkeypatch.setattr(client.client, "post", fake_post(responses, calls))

        assert await client.call("c_get_comments", {}, idempotent=True) == {"id": 1}
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, client, monkeypatch):
        calls = []
        responses = [ConnectError("refused")] * 3
        monkeypatch.setattr(client.client, "post", fake_post(list(responses), calls))

        with pytest.raises(RpcError) as exc_info:
            await client.call("c_get_home_dashboard", idempotent=True)
        assert len(calls) == 3
        assert exc_info.value.is_transient is True

    @pytest.mark.asyncio
    async def test_writes_get_one_attempt(self, client, monkeypatch):
        calls = []
        responses = [TimeoutException("Timeout"), (200, {"xp_earned": 5})]
        monkeypatch.setattr(client.client, "post", fake_post(responses, calls))

        with pytest.raises(RpcError):
            await client.call("c_finish_study_session", {"set_id": "s1"})
        assert len(calls) == 1


class TestSelect:

    @pytest.mark.asyncio
    async def test_select_table(self, client, monkeypatch):
        seen = {}

        async def mock_get(url, **kwargs):
            seen["url"] = url
            seen["params"] = kwargs.get("params")
            return Response(200, json=[{"id": 1, "name": "Art"}], request=Request("GET", "http://x" + url))

        monkeypatch.setattr(client.client, "get", mock_get)

        rows = await client.select("c_subjects", "id,name", order="name")

        assert rows == [{"id": 1, "name": "Art"}]
        assert seen == {"url": "/c_subjects", "params": {"select": "id,name", "order": "name"}}

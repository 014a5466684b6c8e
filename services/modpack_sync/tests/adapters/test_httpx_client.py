import httpx
import pytest

from modpack_sync.adapters.http import httpx_client
from modpack_sync.adapters.http.httpx_client import HttpxClient, parse_retry_after
from modpack_sync.domain.errors import DownloadFailure, WorkspaceError


@pytest.fixture
def sleeps(monkeypatch):
    recorded: list[float] = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(httpx_client.asyncio, "sleep", fake_sleep)
    return recorded


def _client(handler, **kwargs):
    return HttpxClient(transport=httpx.MockTransport(handler), **kwargs)


def test_parse_retry_after():
    assert parse_retry_after("3") == 3.0
    assert parse_retry_after(None) is None
    assert parse_retry_after("-1") is None
    assert parse_retry_after("soon") is None
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0


@pytest.mark.asyncio
async def test_get_json_sends_user_agent_and_params():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"id": "P1"})

    async with _client(handler, user_agent="tests/1.0") as client:
        data = await client.get_json("https://api.test/v2/project/x", params={"loaders": '["fabric"]'})

    assert data == {"id": "P1"}
    assert seen[0].headers["User-Agent"] == "tests/1.0"
    assert seen[0].url.params["loaders"] == '["fabric"]'


@pytest.mark.asyncio
async def test_retries_on_429_honouring_retry_after(sleeps):
    responses = iter([httpx.Response(429, headers={"Retry-After": "2"}), httpx.Response(200, json=[])])

    async with _client(lambda request: next(responses)) as client:
        assert await client.get_json("https://api.test/x") == []

    assert sleeps == [2.0]


@pytest.mark.asyncio
async def test_gives_up_after_retries(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    async with _client(handler, retries=2) as client:
        with pytest.raises(DownloadFailure) as excinfo:
            await client.get_json("https://api.test/x")

    assert len(calls) == 3
    assert len(sleeps) == 2
    assert excinfo.value.details["status"] == 503


@pytest.mark.asyncio
async def test_not_found_is_not_retried(sleeps):
    async with _client(lambda request: httpx.Response(404)) as client:
        with pytest.raises(DownloadFailure) as excinfo:
            await client.get_json("https://api.test/x")

    assert excinfo.value.details == {"url": "https://api.test/x", "status": 404}
    assert sleeps == []


@pytest.mark.asyncio
async def test_transport_errors_are_retried(sleeps):
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ConnectError("refused", request=request)
        return httpx.Response(200, json={"ok": True})

    async with _client(handler) as client:
        assert await client.get_json("https://api.test/x") == {"ok": True}
    assert len(sleeps) == 1


@pytest.mark.asyncio
async def test_download_streams_to_destination(tmp_path):
    async with _client(lambda request: httpx.Response(200, content=b"jar-bytes")) as client:
        dest = await client.download("https://cdn.test/a.jar", tmp_path / "nested" / "a.jar")

    assert dest.read_bytes() == b"jar-bytes"


@pytest.mark.asyncio
async def test_failed_download_leaves_no_file(tmp_path, sleeps):
    dest = tmp_path / "a.jar"
    async with _client(lambda request: httpx.Response(410), retries=0) as client:
        with pytest.raises(DownloadFailure):
            await client.download("https://cdn.test/a.jar", dest)
    assert not dest.exists()


@pytest.mark.asyncio
async def test_unwritable_destination_raises_workspace_error(tmp_path, sleeps):
    dest = tmp_path / "a.jar"
    dest.mkdir()
    async with _client(lambda request: httpx.Response(200, content=b"jar-bytes")) as client:
        with pytest.raises(WorkspaceError) as excinfo:
            await client.download("https://cdn.test/a.jar", dest)

    assert excinfo.value.details == {"path": str(dest), "url": "https://cdn.test/a.jar"}
    assert sleeps == []
    assert dest.is_dir()

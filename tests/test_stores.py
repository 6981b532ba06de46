"""Tests for the local SQL store and the HTTP sync backend client."""
import httpx
import pytest

from tribeboard.models.family import Family
from tribeboard.services.stores import HttpRemoteStore, RemoteLookupResult, SqlAlchemyLocalStore


def remote_with(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpRemoteStore("https://sync.example.com/api/", client=client)


class TestSqlAlchemyLocalStore:
    @pytest.mark.asyncio
    async def test_exists_by_code_is_case_insensitive(self, db):
        db.add(Family(name="Smiths", code="ABCDEF"))
        db.commit()
        store = SqlAlchemyLocalStore(db)

        assert await store.exists_by_code("ABCDEF") is True
        assert await store.exists_by_code("abcdef") is True
        assert await store.exists_by_code("ZZZZZZ") is False


class TestHttpRemoteStore:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,expected",
        [
            (200, RemoteLookupResult.FOUND),
            (404, RemoteLookupResult.NOT_FOUND),
            (500, RemoteLookupResult.UNREACHABLE),
            (503, RemoteLookupResult.UNREACHABLE),
            (401, RemoteLookupResult.UNREACHABLE),
        ],
    )
    async def test_lookup_status_mapping(self, status, expected):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(status)

        store = remote_with(handler)
        assert await store.exists_by_code("abcdef") == expected
        assert seen == ["/api/families/by-code/ABCDEF"]

    @pytest.mark.asyncio
    async def test_transport_errors_are_unreachable(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        store = remote_with(handler)
        assert await store.exists_by_code("ABCDEF") == RemoteLookupResult.UNREACHABLE

    @pytest.mark.asyncio
    async def test_push_family(self):
        bodies = []

        def handler(request):
            bodies.append((request.method, request.url.path, request.content))
            return httpx.Response(204)

        store = remote_with(handler)
        ok = await store.push_family({"id": "fam-1", "name": "Smiths", "code": "ABCDEF"})

        assert ok is True
        method, path, content = bodies[0]
        assert method == "PUT"
        assert path == "/api/families/fam-1"
        assert b'"code":"ABCDEF"' in content.replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_push_family_failures_return_false(self):
        def rejecting(request):
            return httpx.Response(500)

        def broken(request):
            raise httpx.ConnectError("refused", request=request)

        assert await remote_with(rejecting).push_family({"id": "fam-1"}) is False
        assert await remote_with(broken).push_family({"id": "fam-1"}) is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [httpx.InvalidURL("bad url"), RuntimeError("client blew up")])
    async def test_push_family_non_transport_errors_return_false(self, error):
        def handler(request):
            raise error

        assert await remote_with(handler).push_family({"id": "fam-1"}) is False

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(404)))
        store = HttpRemoteStore("https://sync.example.com", client=client)

        await store.aclose()

        assert client.is_closed is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_aclose_closes_owned_client(self):
        store = HttpRemoteStore("https://sync.example.com", api_key="secret")
        assert store.client.headers["Authorization"] == "Bearer secret"

        await store.aclose()

        assert store.client.is_closed is True

"""Repository gateway tests."""

import base64

import httpx
import pytest
import respx

from indexer.errors import ResourceFetchError
from indexer.repository.gateway import ACCEPT_HEADER, PREFER_HEADER, ResourceGateway

from conftest import REPOSITORY

URI = f"{REPOSITORY}/grants/30/46"


@pytest.fixture
async def gateway():
    gateway = ResourceGateway("admin", "moo")
    yield gateway
    await gateway.close()


async def test_fetch_sends_negotiation_and_auth(
    respx_mock: respx.MockRouter, gateway: ResourceGateway
) -> None:
    """Requests ask for compact JSON-LD without server-managed triples."""
    route = respx_mock.get(URI).mock(
        return_value=httpx.Response(200, json={"@id": URI, "name": "moo"})
    )

    representation = await gateway.fetch(URI)

    assert representation == {"@id": URI, "name": "moo"}
    request = route.calls.last.request
    assert request.headers["Accept"] == (
        'application/ld+json; profile="http://www.w3.org/ns/json-ld#compacted"'
    )
    assert request.headers["Prefer"] == (
        'return=representation; omit="http://fedora.info/definitions/v4/repository#ServerManaged"'
    )
    assert request.headers["Accept"] == ACCEPT_HEADER
    assert request.headers["Prefer"] == PREFER_HEADER
    assert request.headers["Authorization"] == "Basic " + base64.b64encode(b"admin:moo").decode()


async def test_tombstone_is_none(respx_mock: respx.MockRouter, gateway: ResourceGateway) -> None:
    """A gone resource is reported as a tombstone, not an error."""
    respx_mock.get(URI).mock(return_value=httpx.Response(410))
    assert await gateway.fetch(URI) is None


@pytest.mark.parametrize("status", [401, 404, 500])
async def test_other_failures_raise(
    respx_mock: respx.MockRouter, gateway: ResourceGateway, status: int
) -> None:
    """Any other non-success status is a fetch failure."""
    respx_mock.get(URI).mock(return_value=httpx.Response(status))

    with pytest.raises(ResourceFetchError) as exc_info:
        await gateway.fetch(URI)

    assert exc_info.value.status_code == status
    assert exc_info.value.uri == URI


async def test_non_object_body_raises(respx_mock: respx.MockRouter, gateway: ResourceGateway) -> None:
    """A representation must be a JSON object."""
    respx_mock.get(URI).mock(return_value=httpx.Response(200, json=["a"]))

    with pytest.raises(ResourceFetchError):
        await gateway.fetch(URI)

"""Synchronization service lifecycle tests."""

import asyncio
import base64

import httpx
import pytest
import respx

from indexer.config import Settings
from indexer.errors import SchemaBootstrapError
from indexer.events.source import QueueEventSource
from indexer.events.types import ChangeAction, ChangeEvent
from indexer.repository.gateway import ResourceGateway
from indexer.service import ServiceState, SyncService

from conftest import ES_INDEX, PASS_PREFIX, REPOSITORY

URI = f"{REPOSITORY}/journals/ab/cd"
DOC_URL = f"{ES_INDEX}_doc/" + base64.urlsafe_b64encode(b"/fcrepo/rest/journals/ab/cd").decode()


def mock_missing_index(respx_mock: respx.MockRouter, create_status: int = 200) -> respx.Route:
    respx_mock.get(ES_INDEX).mock(return_value=httpx.Response(404))
    return respx_mock.put(ES_INDEX).mock(return_value=httpx.Response(create_status, json={}))


async def test_start_and_stop(respx_mock: respx.MockRouter, settings: Settings) -> None:
    """Starting bootstraps the schema; stopping returns to STOPPED."""
    mock_missing_index(respx_mock)
    service = SyncService(settings)
    assert service.state is ServiceState.STOPPED

    await service.start()
    assert service.state is ServiceState.RUNNING
    assert "journalName" in service.schema.suggest_fields

    with pytest.raises(RuntimeError):
        await service.start()

    await service.stop()
    assert service.state is ServiceState.STOPPED
    await service.stop()


async def test_bootstrap_failure_keeps_service_stopped(
    respx_mock: respx.MockRouter, settings: Settings
) -> None:
    """A schema that cannot be established prevents serving."""
    mock_missing_index(respx_mock, create_status=500)
    service = SyncService(settings)

    with pytest.raises(SchemaBootstrapError):
        await service.start()

    assert service.state is ServiceState.STOPPED
    with pytest.raises(RuntimeError):
        await service.handle(ChangeEvent(action=ChangeAction.DELETED, resource_uri=URI))


async def test_consumes_events_from_source(
    respx_mock: respx.MockRouter, settings: Settings
) -> None:
    """Events from the source are synchronized into the index."""
    mock_missing_index(respx_mock)
    respx_mock.get(URI).mock(
        return_value=httpx.Response(200, json={"@id": URI, "journalName": "Nature Physics"})
    )
    upsert = respx_mock.put(DOC_URL).mock(return_value=httpx.Response(200, json={}))
    delete = respx_mock.delete(DOC_URL).mock(return_value=httpx.Response(200, json={}))
    types = frozenset({PASS_PREFIX + "Journal"})
    source = QueueEventSource(poll_interval=0.01)

    async with SyncService(settings) as service:
        consumer = asyncio.create_task(service.run(source))
        await source.publish(ChangeEvent(action=ChangeAction.CREATED, resource_uri=URI, resource_types=types))
        await source.publish(ChangeEvent(action=ChangeAction.DELETED, resource_uri=URI, resource_types=types))
        await source.join()

    await consumer
    assert service.state is ServiceState.STOPPED
    assert upsert.call_count == 1
    assert delete.call_count == 1
    assert source.delivered_events == 2
    assert source.dead_letters == []


async def test_run_requires_running_service(settings: Settings) -> None:
    """A stopped service does not subscribe."""
    with pytest.raises(RuntimeError):
        await SyncService(settings).run(QueueEventSource())


async def test_shared_client_left_open(respx_mock: respx.MockRouter, settings: Settings) -> None:
    """An injected HTTP client belongs to the caller and survives stop()."""
    mock_missing_index(respx_mock)

    async with httpx.AsyncClient() as client:
        async with SyncService(settings, client=client):
            pass
        assert not client.is_closed


async def test_event_outliving_shutdown_timeout_completes(
    respx_mock: respx.MockRouter, settings: Settings, monkeypatch: pytest.MonkeyPatch
) -> None:
    """An event still running when the shutdown wait expires keeps its HTTP client."""
    settings = settings.model_copy(update={"shutdown_timeout": 0.05})
    mock_missing_index(respx_mock)
    respx_mock.get(URI).mock(
        return_value=httpx.Response(200, json={"@id": URI, "journalName": "Nature Physics"})
    )
    upsert = respx_mock.put(DOC_URL).mock(return_value=httpx.Response(200, json={}))

    fetching = asyncio.Event()
    fetch = ResourceGateway.fetch

    async def slow_fetch(self: ResourceGateway, resource_uri: str) -> dict[str, object] | None:
        fetching.set()
        await asyncio.sleep(0.3)
        return await fetch(self, resource_uri)

    monkeypatch.setattr(ResourceGateway, "fetch", slow_fetch)
    source = QueueEventSource(poll_interval=0.01)
    types = frozenset({PASS_PREFIX + "Journal"})

    async with SyncService(settings) as service:
        consumer = asyncio.create_task(service.run(source))
        await source.publish(ChangeEvent(action=ChangeAction.MODIFIED, resource_uri=URI, resource_types=types))
        await fetching.wait()

    assert service.state is ServiceState.STOPPED
    await consumer
    await service.drained()

    assert upsert.call_count == 1
    assert source.dead_letters == []
    assert source.delivered_events == 1

import pytest

from conftest import FakeEnrichmentClient, FakeRemoteStore
from vistaguide.core.errors import StoreCorruptError
from vistaguide.models.domain import Destination, FreshnessKind, Provenance
from vistaguide.services.destinations import RECOMMENDATIONS_KEY, DestinationService
from vistaguide.services.enrichment import EnrichmentGateway

RED_FORT = {
    "title": "Red Fort",
    "subtitle": "Delhi",
    "description": "A historic fort in Old Delhi.",
    "type": "fort",
    "rating": 4.6,
    "imageUrl": "https://img/red_fort.jpg",
    "historicalInfo": {"briefDescription": "Built by Shah Jahan.", "keyEvents": ["1639"]},
}


def make_service(store, tracker, probe, remote=None, client=None):
    enrichment = EnrichmentGateway(store, tracker, probe, client)
    return DestinationService(store, probe, tracker, remote=remote, enrichment=enrichment)


@pytest.mark.asyncio
async def test_offline_detail_comes_from_store_without_remote_calls(
    store, tracker, offline_probe, taj_mahal
):
    store.upsert([taj_mahal])
    remote = FakeRemoteStore({"taj_mahal_001": {"title": "Remote Taj"}})
    client = FakeEnrichmentClient()
    service = make_service(store, tracker, offline_probe, remote, client)

    result = await service.resolve("taj_mahal_001")
    await service.drain()

    assert result.provider == "local"
    assert result.value == taj_mahal
    assert remote.calls == []
    assert client.calls == 0


@pytest.mark.asyncio
async def test_remote_hit_is_written_back_for_offline_use(store, tracker, online_probe):
    remote = FakeRemoteStore({"red_fort_001": RED_FORT})
    service = make_service(store, tracker, online_probe, remote)

    result = await service.resolve("red_fort_001", enrich=False)

    assert result.provider == "remote"
    assert result.value.image_url == "https://img/red_fort.jpg"
    assert result.value.historical_info.key_events == ["1639"]
    assert result.value.provenance is Provenance.remote
    assert store.get("red_fort_001") == result.value


@pytest.mark.asyncio
async def test_remote_hit_is_enriched_when_requested(store, tracker, online_probe):
    remote = FakeRemoteStore({"red_fort_001": RED_FORT})
    client = FakeEnrichmentClient()
    service = make_service(store, tracker, online_probe, remote, client)

    result = await service.resolve("red_fort_001")

    assert client.calls == 1
    assert result.value.provenance is Provenance.enriched
    assert store.get("red_fort_001").provenance is Provenance.enriched


@pytest.mark.asyncio
async def test_local_hit_schedules_background_enrichment(store, tracker, online_probe, taj_mahal):
    store.upsert([taj_mahal])
    client = FakeEnrichmentClient()
    service = make_service(store, tracker, online_probe, FakeRemoteStore(), client)

    result = await service.resolve("taj_mahal_001")
    assert result.value.provenance is Provenance.local

    await service.drain()
    assert client.calls == 1
    assert store.get("taj_mahal_001").provenance is Provenance.enriched


@pytest.mark.asyncio
async def test_preloaded_record_skips_other_tiers_and_is_stored(store, tracker, online_probe):
    remote = FakeRemoteStore({"x": {"title": "Remote"}})
    service = make_service(store, tracker, online_probe, remote)
    preloaded = Destination(id="x", title="From the list")

    result = await service.resolve("x", preloaded=preloaded, enrich=False)

    assert result.provider == "preloaded"
    assert remote.calls == []
    assert store.get("x").title == "From the list"


@pytest.mark.asyncio
async def test_unknown_everywhere_is_unresolved(store, tracker, online_probe):
    service = make_service(store, tracker, online_probe, FakeRemoteStore())
    result = await service.resolve("atlantis")
    assert not result.resolved
    assert result.attempted == ["preloaded", "local", "remote"]


@pytest.mark.asyncio
async def test_remote_failure_is_unresolved(store, tracker, online_probe):
    remote = FakeRemoteStore({"red_fort_001": RED_FORT})
    remote.fail = True
    service = make_service(store, tracker, online_probe, remote)

    result = await service.resolve("red_fort_001")
    assert not result.resolved


@pytest.mark.asyncio
async def test_store_corruption_surfaces(store, tracker, online_probe, mocker):
    mocker.patch.object(store, "get", side_effect=StoreCorruptError("disk I/O error"))
    service = make_service(store, tracker, online_probe, FakeRemoteStore())

    with pytest.raises(StoreCorruptError):
        await service.resolve("taj_mahal_001")


@pytest.mark.asyncio
async def test_refresh_refetches_remote(store, tracker, online_probe):
    store.upsert([Destination(id="red_fort_001", title="Old title")])
    remote = FakeRemoteStore({"red_fort_001": RED_FORT})
    service = make_service(store, tracker, online_probe, remote)

    result = await service.refresh("red_fort_001", enrich=False)

    assert result.value.title == "Red Fort"
    assert store.get("red_fort_001").title == "Red Fort"


@pytest.mark.asyncio
async def test_recommendations_fetched_once_per_ttl(store, tracker, clock, online_probe):
    remote = FakeRemoteStore({"red_fort_001": RED_FORT, "hampi_001": {"title": "Hampi"}})
    service = make_service(store, tracker, online_probe, remote)

    first = await service.list_destinations(limit=10)
    second = await service.list_destinations(limit=10)

    assert {d.id for d in first} == {"red_fort_001", "hampi_001"}
    assert {d.id for d in second} == {"red_fort_001", "hampi_001"}
    assert remote.calls.count("query") == 1
    assert not tracker.is_expired(FreshnessKind.recommendations, RECOMMENDATIONS_KEY)

    clock.advance(minutes=16)
    await service.list_destinations(limit=10)
    assert remote.calls.count("query") == 2


@pytest.mark.asyncio
async def test_recommendations_offline_serve_local(store, tracker, offline_probe, taj_mahal):
    store.upsert([taj_mahal])
    remote = FakeRemoteStore({"red_fort_001": RED_FORT})
    service = make_service(store, tracker, offline_probe, remote)

    assert await service.list_destinations() == [taj_mahal]
    assert remote.calls == []


@pytest.mark.asyncio
async def test_recommendations_keep_freshly_enriched_record(store, tracker, clock, online_probe):
    remote = FakeRemoteStore({"taj_mahal_001": {"title": "Taj Mahal", "type": "monument"}})
    client = FakeEnrichmentClient()
    service = make_service(store, tracker, online_probe, remote, client)

    await service.resolve("taj_mahal_001")
    assert client.calls == 1

    listed = await service.list_destinations()
    assert listed[0].provenance is Provenance.enriched
    assert store.get("taj_mahal_001").provenance is Provenance.enriched

    clock.advance(minutes=16)
    listed = await service.list_destinations()
    assert listed[0].provenance is Provenance.remote
    assert tracker.is_expired(FreshnessKind.enrichment, "taj_mahal_001")

    await service.resolve("taj_mahal_001")
    await service.drain()
    assert client.calls == 2
    assert store.get("taj_mahal_001").provenance is Provenance.enriched


@pytest.mark.asyncio
async def test_preloaded_record_does_not_replace_fresh_enrichment(
    store, tracker, online_probe, taj_mahal
):
    store.upsert([taj_mahal])
    client = FakeEnrichmentClient()
    service = make_service(store, tracker, online_probe, FakeRemoteStore(), client)
    await service.resolve("taj_mahal_001")
    await service.drain()

    result = await service.resolve("taj_mahal_001", preloaded=taj_mahal)
    await service.drain()

    assert result.provider == "preloaded"
    assert client.calls == 1
    assert store.get("taj_mahal_001").provenance is Provenance.enriched


@pytest.mark.asyncio
async def test_refresh_replaces_enriched_copy_and_enriches_again(
    store, tracker, online_probe, taj_mahal
):
    store.upsert([taj_mahal])
    remote = FakeRemoteStore({"taj_mahal_001": {"title": "Taj Mahal (remote)"}})
    client = FakeEnrichmentClient()
    service = make_service(store, tracker, online_probe, remote, client)
    await service.resolve("taj_mahal_001")
    await service.drain()

    result = await service.refresh("taj_mahal_001")

    assert client.calls == 2
    assert result.value.title == "Taj Mahal (remote)"
    assert result.value.provenance is Provenance.enriched


@pytest.mark.asyncio
async def test_refresh_without_remote_copy_reads_store_once(store, tracker, online_probe, taj_mahal):
    store.upsert([taj_mahal])
    remote = FakeRemoteStore()
    service = make_service(store, tracker, online_probe, remote)

    result = await service.refresh("taj_mahal_001", enrich=False)

    assert result.provider == "local"
    assert result.value == taj_mahal
    assert result.attempted == ["remote", "local"]
    assert remote.calls == ["get:taj_mahal_001"]

from fastapi import APIRouter, Depends

from vistaguide.api import get_services
from vistaguide.models.schemas import CacheStatsResponse, NetworkSimulationRequest
from vistaguide.services.container import Services

router = APIRouter()


@router.get("/health")
async def healthcheck(services: Services = Depends(get_services)) -> dict:
    return {
        "status": "ok",
        "environment": services.settings.environment,
        "online": services.probe.is_online_cached(),
        "simulated_offline": services.probe.simulation.force_offline,
    }


@router.get("/connectivity")
async def connectivity(services: Services = Depends(get_services)) -> dict:
    return {"online": await services.probe.is_online()}


@router.post("/connectivity/simulate")
def simulate_network(
    body: NetworkSimulationRequest, services: Services = Depends(get_services)
) -> dict:
    services.probe.simulate(body.force_offline, body.latency_ms / 1000.0)
    return {"force_offline": body.force_offline, "latency_ms": body.latency_ms}


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats(services: Services = Depends(get_services)) -> CacheStatsResponse:
    return CacheStatsResponse(**services.cache_stats())


@router.delete("/cache")
def clear_cache(services: Services = Depends(get_services)) -> dict:
    services.clear_caches()
    return {"status": "cleared"}

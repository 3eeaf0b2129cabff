from fastapi import HTTPException
from starlette.requests import Request

from vistaguide.services.container import Services


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise HTTPException(status_code=500, detail="Services not initialized")
    return services

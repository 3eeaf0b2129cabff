from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from vistaguide.api import routes_chat, routes_destinations, routes_health
from vistaguide.core.config import settings
from vistaguide.core.errors import StoreCorruptError
from vistaguide.core.logging import configure_logging
from vistaguide.services.container import Services, build_services


async def store_corrupt_handler(request: Request, exc: StoreCorruptError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": f"Local store failure: {exc}"})


def create_app(services: Services | None = None) -> FastAPI:
    configure_logging()
    app = FastAPI(title=f"{settings.app_name} resolution engine", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StoreCorruptError, store_corrupt_handler)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(
        routes_destinations.router, prefix="/destinations", tags=["destinations"]
    )
    app.include_router(routes_chat.router, prefix="/chat", tags=["chat"])

    # Inject services into state for dependencies
    app.state.services = services or build_services(settings)
    app.state.settings = settings
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)

# Run from project root: uvicorn inquiro.main:app --reload

import logging

from fastapi import FastAPI

from inquiro.api.deps import Services, build_services
from inquiro.api.routes import router

logging.basicConfig(level=logging.INFO)


def create_app(services: Services | None = None) -> FastAPI:
    """Build the API. Pass `services` to run against substitutes instead of the configured clients."""
    app = FastAPI(title="Inquiro Knowledge Base Chat")
    app.state.services = services if services is not None else build_services()
    app.include_router(router)
    return app


app = create_app()

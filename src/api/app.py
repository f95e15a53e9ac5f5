"""FastAPI application factory for the vault REST API."""

from fastapi import APIRouter, FastAPI

from api.routes import register_routes


def create_app(cache) -> FastAPI:
    """Build and return a FastAPI app wired to the given VaultCache."""
    app = FastAPI(title="vault-tasks", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_routes(api, cache)
    app.include_router(api)

    return app

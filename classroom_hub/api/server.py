"""
FastAPI server. Central endpoints: GET /api/health, GET /api/config. Per-plugin routes
are mounted from classroom_hub.plugins.<package>.api (get_router(hub_app)) under the
module's API_PREFIX, or /api/components/<package>/ when it has none.
Docs: http://<host>:<port>/docs
"""
import importlib
import logging
import pkgutil
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Keys to exclude from config in API (secrets)
_CONFIG_SECRET_KEYS = frozenset(
    {"api_key", "password", "token", "secret", "credentials", "client_secret", "state_secret", "refresh_token"}
)


def _safe_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return config with secret keys omitted, recursively."""
    if not config:
        return {}
    return {
        k: _safe_config(v) if isinstance(v, dict) else v
        for k, v in config.items()
        if k.lower() not in _CONFIG_SECRET_KEYS
    }


def create_app(hub_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given ClassroomHubApp instance."""
    app = FastAPI(title="Classroom Hub API", description="Aggregated Google Classroom assignments")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})

    @app.get("/api/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/config")
    def get_config() -> Dict[str, Any]:
        """Effective configuration without secrets."""
        return _safe_config(hub_app.config.data)

    # Mount per-plugin API routers from classroom_hub.plugins.<name>.api (get_router(hub_app))
    plugins_pkg = importlib.import_module("classroom_hub.plugins")
    for _mod, name, is_pkg in pkgutil.iter_modules(plugins_pkg.__path__):
        if not is_pkg:
            continue
        try:
            api_module = importlib.import_module(f"classroom_hub.plugins.{name}.api")
        except ImportError as e:
            logger.warning(f"Plugin {name} has no usable API module: {e}")
            continue
        if not hasattr(api_module, "get_router") or not callable(api_module.get_router):
            continue
        router = api_module.get_router(hub_app)
        if router is not None:
            prefix = getattr(api_module, "API_PREFIX", f"/api/components/{name}")
            app.include_router(router, prefix=prefix)
            logger.info(f"Mounted API router for plugin {name} at {prefix}")

    return app


def run_api_server(hub_app: Any, fastapi_app: FastAPI = None) -> None:
    """
    Serve the API in the foreground until interrupted.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    import uvicorn

    api_config = hub_app.config.get_section("api")
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = fastapi_app or create_app(hub_app)
    logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
    uvicorn.run(fastapi_app, host=host, port=port, log_config=None)

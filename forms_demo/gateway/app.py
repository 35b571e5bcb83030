from __future__ import annotations

import argparse
import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from forms_demo import __version__, config
from forms_demo.gateway.abilities_routes import abilities_router
from forms_demo.gateway.legacy_routes import legacy_router
from forms_demo.runtime.abilities.forms import build_registry
from forms_demo.runtime.abilities.registry import AbilityError
from forms_demo.runtime.operations import StoreError
from forms_demo.runtime.storage import paths
from forms_demo.runtime.storage.forms_db import FormsDB

logger = logging.getLogger("forms_demo.gateway")

NO_ROUTE = {
    "code": "rest_no_route",
    "message": "No route was found matching the URL and request method.",
    "data": {"status": 404},
}


def create_app(
    db: Optional[FormsDB] = None,
    *,
    abilities_enabled: Optional[bool] = None,
    admin_username: Optional[str] = None,
    admin_app_password: Optional[str] = None,
) -> FastAPI:
    """
    Build the forms service.

    Arguments left as None are read from forms_demo.json / environment.
    With abilities disabled only the legacy routes are mounted, which is what
    a host without the abilities endpoint looks like to the bridge.
    """
    if db is None:
        db = FormsDB(paths.db_path())
    db.startup()
    registry = build_registry(db)
    enabled = config.abilities_enabled() if abilities_enabled is None else bool(abilities_enabled)

    app = FastAPI(title="Forms Demo", version=__version__)
    app.state.db = db
    app.state.registry = registry
    app.state.admin_username = admin_username if admin_username is not None else config.admin_username()
    app.state.admin_app_password = (
        admin_app_password if admin_app_password is not None else config.admin_app_password()
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AbilityError)
    async def _ability_error(request: Request, exc: AbilityError):
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(StoreError)
    async def _store_error(request: Request, exc: StoreError):
        return JSONResponse(
            {"code": "forms_demo_store_error", "message": str(exc), "data": {"status": 500}},
            status_code=500,
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(NO_ROUTE, status_code=404)
        return JSONResponse(
            {"code": "http_error", "message": str(exc.detail), "data": {"status": exc.status_code}},
            status_code=exc.status_code,
        )

    @app.get("/health")
    async def health():
        return {"ok": True, "version": __version__, "abilities": enabled}

    if enabled:
        app.include_router(abilities_router(registry))
    else:
        logger.info("abilities endpoint disabled; serving legacy routes only")
    app.include_router(legacy_router(registry))

    return app


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(description="Run the forms demo service.")
    parser.add_argument("--host", default=None)
    parser.add_argument("--port", type=int, default=None)
    args = parser.parse_args(argv)

    import uvicorn

    host = args.host or config.server_host()
    port = args.port or config.server_port()
    logger.info("starting forms service on http://%s:%s", host, port)
    uvicorn.run(create_app(), host=host, port=port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Mount

from drivefile.auth import router as auth_router
from drivefile.config import get_settings
from drivefile.exceptions import UpstreamError
from drivefile.formatting import format_error
from drivefile.mcp_server import mcp

logger = logging.getLogger(__name__)


# --- Localhost-only middleware ---

class LocalhostOnlyMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        client_host = request.client.host if request.client else None
        if client_host not in ("127.0.0.1", "::1", "localhost"):
            return JSONResponse(
                status_code=403,
                content={"error_code": "forbidden", "message": "Localhost access only"},
            )
        return await call_next(request)


# --- FastAPI app ---

api = FastAPI(title="drivefile", version="0.1.0")
api.include_router(auth_router)


# --- Exception handlers ---

@api.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    return JSONResponse(
        status_code=502,
        content={"error_code": "upstream_error", "message": format_error(exc, get_settings().base_url)},
    )


# --- Starlette root app ---

mcp_app = mcp.http_app(path="/", stateless_http=True)

app = Starlette(
    middleware=[Middleware(LocalhostOnlyMiddleware)],
    routes=[
        Mount("/mcp", app=mcp_app),
        Mount("/", app=api),
    ],
    lifespan=mcp_app.lifespan,
)


def run():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.google_client_id or not settings.google_client_secret:
        logger.error("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET environment variables are required")
        raise SystemExit(1)

    if settings.is_http:
        logger.info("Google Drive MCP server running on %s/mcp", settings.base_url)
        uvicorn.run(
            "drivefile.main:app",
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
        )
    else:
        logger.info("Google Drive MCP server running on stdio")
        mcp.run(transport="stdio")


if __name__ == "__main__":
    run()

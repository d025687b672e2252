"""
HTTP surface of spotproxy.

Routes reshape Binance Spot responses into flat JSON for a low-code frontend.
Errors are returned as `{"error": message}`:
- missing `symbol` -> 400
- `InvalidInput` -> 422
- `UpstreamUnavailable` -> 502
- `MissingCredentials` -> 500
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from spotproxy.config.loader import Settings
from spotproxy.errors import InvalidInput, MissingCredentials, UpstreamUnavailable
from spotproxy.exchange.client import BinanceSpotClient
from spotproxy.service import PositionService

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, X-MBX-APIKEY",
}


def _require_symbol(symbol: Optional[str]) -> str:
    if not symbol or not symbol.strip():
        raise HTTPException(status_code=400, detail="Missing symbol")
    return symbol.strip().upper()


def create_app(settings: Settings, client: Any = None) -> FastAPI:
    """Build the proxy app.

    When `client` is None a `BinanceSpotClient` is created on startup and
    closed on shutdown; an injected client is left for the caller to close.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.client is None
        if owned:
            app.state.client = BinanceSpotClient(settings)
        logger.info(f"spotproxy ready (upstream {settings.base_url}, signed calls {'on' if settings.has_credentials else 'off'})")
        try:
            yield
        finally:
            if owned:
                await app.state.client.close()
                app.state.client = None

    app = FastAPI(title="Binance Spot proxy", lifespan=lifespan)
    app.state.settings = settings
    app.state.client = client

    @app.middleware("http")
    async def _cors(request: Request, call_next):
        if request.method == "OPTIONS":
            response = Response(status_code=200)
        else:
            response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code)

    @app.exception_handler(InvalidInput)
    async def _invalid_input(request: Request, exc: InvalidInput):
        logger.warning(f"{request.url.path}: invalid input: {exc}")
        return JSONResponse({"error": str(exc)}, status_code=422)

    @app.exception_handler(UpstreamUnavailable)
    async def _upstream(request: Request, exc: UpstreamUnavailable):
        logger.error(f"{request.url.path}: upstream {exc.endpoint or '?'} unavailable: {exc}")
        return JSONResponse({"error": str(exc), "upstream": exc.endpoint}, status_code=502)

    @app.exception_handler(MissingCredentials)
    async def _credentials(request: Request, exc: MissingCredentials):
        logger.error(f"{request.url.path}: {exc}")
        return JSONResponse({"error": str(exc)}, status_code=500)

    def get_client(request: Request) -> Any:
        return request.app.state.client

    def get_service(request: Request) -> PositionService:
        return PositionService(request.app.state.client, settings)

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "OK - Binance Spot proxy"

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/time")
    async def server_time(client: Any = Depends(get_client)):
        return await client.server_time()

    @app.get("/avgPrice")
    async def avg_price(symbol: Optional[str] = None, client: Any = Depends(get_client)):
        sym = _require_symbol(symbol)
        price = await client.avg_price(sym)
        return {"symbol": sym, "price": float(price)}

    @app.get("/spot/tickerPrice")
    async def ticker_price(symbol: Optional[str] = None, client: Any = Depends(get_client)):
        sym = _require_symbol(symbol)
        price = await client.ticker_price(sym)
        return {"symbol": sym, "lastPrice": float(price)}

    @app.get("/spot/dayOpen")
    async def day_open(symbol: Optional[str] = None, client: Any = Depends(get_client)):
        sym = _require_symbol(symbol)
        open_ = await client.day_open(sym)
        return {"symbol": sym, "dayOpen": float(open_)}

    @app.get("/spot/avgEntry")
    async def avg_entry(symbol: Optional[str] = None, svc: PositionService = Depends(get_service)):
        sym = _require_symbol(symbol)
        pos = await svc.position(sym)
        return {"symbol": sym, **pos.as_dict()}

    @app.get("/spot/account")
    async def account(svc: PositionService = Depends(get_service)):
        return {"balances": await svc.balances()}

    @app.get("/spot/summary")
    async def summary(symbol: Optional[str] = None, svc: PositionService = Depends(get_service)):
        sym = _require_symbol(symbol)
        return await svc.summary(sym)

    return app

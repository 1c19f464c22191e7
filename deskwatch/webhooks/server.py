"""HTTP server using aiohttp: webhook intake and the tickets read path."""

from __future__ import annotations

from aiohttp import web

from deskwatch.context import AppContext
from deskwatch.errors import ConfigurationError, DeskwatchError
from deskwatch.utils.logging import get_logger

log = get_logger(__name__)

SIGNATURE_HEADER = "linear-signature"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": f"Content-Type, {SIGNATURE_HEADER}",
}


class WebhookServer:
    """Receives Linear webhooks and serves matched tickets."""

    def __init__(self, context: AppContext) -> None:
        self._context = context
        self._config = context.settings.server
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self.build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
            path=self._config.webhook_path,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        await self._context.close()
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def build_app(self) -> web.Application:
        app = web.Application()
        path = self._config.webhook_path
        if not path.startswith("/"):
            path = f"/{path}"
        app.router.add_post(path, self._handle_webhook)
        app.router.add_route("OPTIONS", path, self._handle_preflight)
        app.router.add_get("/api/tickets", self._handle_tickets)
        app.router.add_get("/healthz", self._handle_health)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        signature = request.headers.get(SIGNATURE_HEADER)
        body = await request.read()
        result = await self._context.handler.handle(signature, body)
        return web.json_response(result.body, status=result.status)

    async def _handle_preflight(self, request: web.Request) -> web.Response:
        return web.json_response({}, headers=CORS_HEADERS)

    async def _handle_tickets(self, request: web.Request) -> web.Response:
        try:
            days = _int_param(request, "days")
            since_hours = _int_param(request, "since_hours")
        except ValueError as e:
            return web.json_response({"error": str(e)}, status=400)

        try:
            payload = await self._context.tickets.list_tickets(
                days_back=days,
                tag=request.query.get("tag") or None,
                query=request.query.get("q") or None,
                since_hours=since_hours,
            )
        except ConfigurationError as e:
            log.error("tickets_not_configured", error=str(e))
            return web.json_response({"error": str(e)}, status=500)
        except DeskwatchError as e:
            log.error("tickets_fetch_failed", error=str(e))
            return web.json_response({"error": str(e) or "Failed to fetch tickets"}, status=500)

        return web.json_response(payload)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response({"ok": True})


def _int_param(request: web.Request, name: str) -> int | None:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Query parameter '{name}' must be an integer") from None
    if value < 1:
        raise ValueError(f"Query parameter '{name}' must be positive")
    return value

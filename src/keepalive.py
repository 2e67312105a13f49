import logging
from typing import Optional

from aiohttp import web

from .service import SubmissionService

logger = logging.getLogger("subbot.keepalive")


def build_app(service: SubmissionService) -> web.Application:
    """/health for uptime pings, /api/pending for a quick look at the buffers."""
    app = web.Application()

    async def health(_request):
        return web.Response(text="ok", content_type="text/plain")

    async def pending(_request):
        teams = service.status()
        return web.json_response(
            {
                "round": service.config.current_round,
                "pending_total": sum(t["pending"] for t in teams),
                "teams": teams,
            }
        )

    app.router.add_get("/health", health)
    app.router.add_get("/api/pending", pending)
    return app


async def start_keepalive_server(service: SubmissionService, port: int) -> Optional[web.AppRunner]:
    runner = web.AppRunner(build_app(service))
    await runner.setup()
    site = web.TCPSite(runner, host="0.0.0.0", port=int(port))
    try:
        await site.start()
    except OSError:
        logger.exception("Keepalive server could not bind port %s", port)
        await runner.cleanup()
        return None
    logger.info("Keepalive server listening on :%s", port)
    return runner

#!/usr/bin/env python3
"""
ClinicalTrials.gov Search MCP Server - HTTP Mode

Runs the MCP server over SSE or streamable-http so remote clients can connect.

Usage:
    # Run with SSE transport (default, more compatible)
    python run_server.py --transport sse --port 8765

    # Run with streamable-http transport
    python run_server.py --transport streamable-http --port 8765

Environment Variables:
    CTGOV_BASE_URL: ClinicalTrials.gov API root
    CTGOV_TIMEOUT: Request timeout in seconds (default: 30)
    CTGOV_PAGE_DELAY: Pause between page requests (default: 0.25)
    CTGOV_MAX_STUDIES_FOR_ANALYSIS: Trend analysis study limit (default: 5000)
    CTGOV_ANALYSIS_TIME_LIMIT: Seconds a trend analysis may spend paging, 0 for no limit (default: 120)
    CTGOV_LOG_LEVEL: Logging level (default: INFO)
    MCP_PORT: Server port (default: 8765)
    MCP_HOST: Server host (default: 0.0.0.0)
"""

import argparse
import contextlib
import logging
import os

from ctgov_search import __version__
from ctgov_search.presentation.mcp_server.server import create_server, get_container, settings_from_env

logging.basicConfig(
    level=getattr(logging, os.environ.get("CTGOV_LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Run ClinicalTrials.gov Search MCP Server in HTTP mode")
    parser.add_argument(
        "--transport",
        choices=["sse", "streamable-http"],
        default="sse",
        help="Transport protocol (default: sse)",
    )
    parser.add_argument(
        "--host",
        default=os.environ.get("MCP_HOST", "0.0.0.0"),
        help="Server host (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("MCP_PORT", "8765")),
        help="Server port (default: 8765)",
    )
    parser.add_argument(
        "--no-security",
        action="store_true",
        default=True,
        help="Disable DNS rebinding protection (default: True for remote access)",
    )

    args = parser.parse_args()
    settings = settings_from_env()

    logger.info("Creating ClinicalTrials.gov Search MCP Server...")
    logger.info(f"  API: {settings['base_url']}")
    logger.info(f"  Transport: {args.transport}")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  DNS Rebinding Protection: {'Disabled' if args.no_security else 'Enabled'}")

    server = create_server(**settings, disable_security=args.no_security)
    source = get_container().record_source()

    import uvicorn
    from starlette.applications import Starlette
    from starlette.responses import JSONResponse
    from starlette.routing import Mount, Route

    if args.transport == "sse":
        mcp_app = server.sse_app()
        logger.info("SSE endpoint: /sse")
        logger.info("Message endpoint: /messages")
    else:
        mcp_app = server.streamable_http_app()
        logger.info("Streamable HTTP endpoint: /mcp")

    async def health(request):
        upstream_ok = await source.health_check()
        return JSONResponse(
            {"status": "ok" if upstream_ok else "degraded", "service": "ctgov-search-mcp", "upstream": upstream_ok},
            status_code=200 if upstream_ok else 503,
        )

    async def info(request):
        return JSONResponse(
            {
                "service": "ClinicalTrials.gov Search MCP Server",
                "version": __version__,
                "transport": args.transport,
                "endpoints": {
                    "mcp": {"sse": "/sse", "messages": "/messages"}
                    if args.transport == "sse"
                    else {"streamable_http": "/mcp"},
                    "utility": {"health": "/health"},
                },
                "usage": {
                    "vscode_mcp_json": {
                        "type": "sse" if args.transport == "sse" else "http",
                        "url": f"http://YOUR_SERVER_IP:{args.port}/{'sse' if args.transport == 'sse' else 'mcp'}",
                    }
                },
            }
        )

    routes = [
        Route("/", info),
        Route("/health", health),
        Mount("/", app=mcp_app),
    ]
    lifespan = None
    if args.transport != "sse":
        # Streamable HTTP sessions need the session manager task group running
        @contextlib.asynccontextmanager
        async def lifespan(app):
            async with server.session_manager.run():
                yield

    app = Starlette(routes=routes, lifespan=lifespan)

    logger.info(f"Starting server at http://{args.host}:{args.port}")
    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


if __name__ == "__main__":
    main()

"""Main entry point for the MCP client inspector."""

import argparse
import asyncio
import logging
import sys

from dotenv import find_dotenv, load_dotenv
from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig

# Load environment variables before the config class reads them
load_dotenv(find_dotenv(usecwd=True))

from . import __version__  # noqa: E402
from .api.app import CONSOLE_PATH, MCP_PATH, create_app  # noqa: E402
from .context import InspectorContext  # noqa: E402
from .server import InspectorMCPServer  # noqa: E402
from .shared.config import Config, get_config  # noqa: E402
from .shared.python_logger_config import setup_python_logging, silence_noisy_loggers  # noqa: E402
from .storage.redis_clients import RedisClients  # noqa: E402
from .tools import TOOL_DESCRIPTIONS  # noqa: E402

logger = logging.getLogger(__name__)


def build_parser(config: Config) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcp-client-inspector",
        description="MCP Client Inspector - test tools plus a live console for MCP client traffic",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Transports:
  http   - MCP streamable HTTP at {MCP_PATH}, console at {CONSOLE_PATH}
  stdio  - MCP over stdin/stdout, console served over HTTP alongside

Environment Variables:
  SERVER_HOST                     - Host to bind to (default: 0.0.0.0)
  HTTP_PORT                       - Port to bind to (default: 3000)
  MCP_TRANSPORT                   - http or stdio (default: http)
  REDIS_URL / REDIS_PASSWORD      - Message history backend
  MESSAGE_HISTORY_LIMIT           - Entries kept per session (default: 1000)
  MESSAGE_HISTORY_RETENTION_DAYS  - Age window for history (default: 7)
  MCP_SESSION_TIMEOUT             - Idle seconds before a session expires (default: 3600)
  LOG_LEVEL                       - TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL
        """
    )
    parser.add_argument(
        "--host",
        default=config.SERVER_HOST,
        help=f"Host to bind to (default: {config.SERVER_HOST}, env: SERVER_HOST)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=config.HTTP_PORT,
        help=f"Port to bind to (default: {config.HTTP_PORT}, env: HTTP_PORT)"
    )
    parser.add_argument(
        "--transport",
        choices=["http", "stdio"],
        default=config.MCP_TRANSPORT,
        help=f"MCP transport (default: {config.MCP_TRANSPORT}, env: MCP_TRANSPORT)"
    )
    parser.add_argument(
        "--redis-url",
        default=None,
        help="Redis URL (env: REDIS_URL)"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--list-tools",
        action="store_true",
        help="List all available tools and exit"
    )
    return parser


def hypercorn_config(host: str, port: int, log_level: str) -> HypercornConfig:
    config = HypercornConfig()
    config.bind = [f"{host}:{port}"]
    config.loglevel = "DEBUG" if log_level == "TRACE" else log_level
    return config


async def run_http(context: InspectorContext, server: InspectorMCPServer, config: HypercornConfig):
    app = create_app(context, server)
    await serve(app, config)


async def run_stdio(context: InspectorContext, server: InspectorMCPServer, config: HypercornConfig):
    """Serve MCP on stdio and the console over HTTP in the same loop."""
    await context.start()
    try:
        await asyncio.gather(
            serve(create_app(context), config),
            server.run_stdio(),
        )
    finally:
        await context.shutdown()


def main():
    """Main entry point."""
    config = get_config()
    args = build_parser(config).parse_args()

    if args.list_tools:
        print("MCP Client Inspector - Available Tools\n")
        for name, description in TOOL_DESCRIPTIONS.items():
            print(f"  {name:<15} - {description}")
        print(f"\nTotal: {len(TOOL_DESCRIPTIONS)} tools")
        sys.exit(0)

    log_level = "DEBUG" if args.debug else config.LOG_LEVEL
    # stdout carries the protocol in stdio mode
    stream = sys.stderr if args.transport == "stdio" else sys.stdout
    setup_python_logging(log_level=log_level, stream=stream)
    silence_noisy_loggers()

    redis_clients = RedisClients(args.redis_url) if args.redis_url else None

    context = InspectorContext(config=config, redis_clients=redis_clients)
    server = InspectorMCPServer(context, debug=args.debug)
    hypercorn = hypercorn_config(args.host, args.port, log_level)

    logger.info(
        "Starting MCP Client Inspector v%s (transport=%s, console=http://%s:%d%s)",
        __version__, args.transport, args.host, args.port, CONSOLE_PATH
    )

    try:
        if args.transport == "stdio":
            asyncio.run(run_stdio(context, server, hypercorn))
        else:
            asyncio.run(run_http(context, server, hypercorn))
    except KeyboardInterrupt:
        logger.info("Server shutdown by user")
        sys.exit(0)
    except Exception:
        logger.error("Server error", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

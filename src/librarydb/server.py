"""LibraryDB MCP Server - FastMCP Implementation

A library circulation backend exposed over MCP.

Features exposed:
- Tools: issue_book and return_book, plus catalog and member maintenance
- Resources: catalog, member history, borrowings and dashboard reports

The store handle is created here and injected into the ledger, the engine,
the tools and the resources; nothing below this module reaches for a global.
"""

import logging
import signal
import sys
from collections.abc import Callable
from datetime import datetime
from typing import Any

from fastmcp import FastMCP

from .config import ServerConfig, get_config
from .database.session import DatabaseManager
from .observability import initialize_observability
from .resources import build_resources
from .services.circulation import CirculationEngine
from .services.inventory import InventoryLedger
from .tools import PayloadTool, build_tools

logger = logging.getLogger(__name__)

INSTRUCTIONS = (
    "LibraryDB - library circulation server. Use issue_book and return_book to lend "
    "and take back copies; copy counters can never go negative or exceed what the "
    "library owns. Browse the catalog and members through library:// resources and "
    "read dashboards under library://reports/."
)


def create_server(
    config: ServerConfig,
    db: DatabaseManager,
    clock: Callable[[], datetime] = datetime.now,
) -> FastMCP:
    """Build the FastMCP server and register every tool and resource."""
    ledger = InventoryLedger(db)
    engine = CirculationEngine(
        db, ledger=ledger, loan_period_days=config.loan_period_days, clock=clock
    )

    mcp = FastMCP(
        name=config.server_name,
        version=config.server_version,
        instructions=INSTRUCTIONS,
    )

    resources = build_resources(db, engine, clock)
    for resource in resources:
        logger.debug("Registering resource: %s with URI: %s", resource["name"], resource["uri"])
        mcp.resource(
            resource["uri"],
            name=resource["name"],
            description=resource["description"],
            mime_type=resource["mime_type"],
        )(resource["handler"])
    logger.info("Registered %d resources", len(resources))

    tools = build_tools(db, engine)
    for tool in tools:
        logger.debug("Registering tool: %s", tool["name"])
        mcp.add_tool(PayloadTool.from_definition(tool))
    logger.info("Registered %d tools", len(tools))

    return mcp


def configure_logging(config: ServerConfig) -> None:
    """Logs go to stderr; stdout carries the stdio protocol."""
    logging.basicConfig(
        level=logging.DEBUG if config.debug else getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.debug:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def run_server(mcp: FastMCP, config: ServerConfig) -> None:
    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info(
        "Starting %s v%s on %s transport",
        config.server_name,
        config.server_version,
        config.transport,
    )
    if config.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="streamable-http", host=config.http_host, port=config.http_port)


def main() -> None:
    """Main entry point for the MCP server."""
    config = get_config()
    configure_logging(config)
    initialize_observability()

    db = DatabaseManager(config)
    try:
        logger.info("=" * 60)
        logger.info("LibraryDB MCP Server")
        logger.info("Version: %s", config.server_version)
        logger.info("Transport: %s", config.transport)
        logger.info("Debug Mode: %s", config.debug)
        logger.info("=" * 60)

        db.init_database()
        if not db.verify_connection():
            logger.error("Database at %s is not reachable", config.database_url)
            sys.exit(1)

        run_server(create_server(config, db), config)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Failed to start MCP server")
        sys.exit(1)
    finally:
        db.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    main()

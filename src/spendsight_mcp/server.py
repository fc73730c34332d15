"""
MCP server for SpendSight.

Exposes the expense ledger and category tree through the Model Context
Protocol.
"""

import inspect
import json
import logging
from typing import Any, Dict, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from spendsight_mcp.config import Settings, get_settings
from spendsight_mcp.core.auth import AuthSession, make_user
from spendsight_mcp.core.categories import CategoryStore
from spendsight_mcp.core.exceptions import PermissionDeniedError, SpendSightError
from spendsight_mcp.core.ledger import TransactionLedger
from spendsight_mcp.tools.tools import (
    TOOL_PERMISSIONS,
    SpendSightTools,
    create_tool_schemas,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_EMAIL = "demo@spendsight.com"


class SpendSightServer:
    """MCP server for SpendSight data."""

    def __init__(
        self,
        ledger: Optional[TransactionLedger] = None,
        categories: Optional[CategoryStore] = None,
        session: Optional[AuthSession] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the MCP server.

        Args:
            ledger: Transaction ledger (default: empty)
            categories: Category store (default: empty)
            session: Auth session; defaults to a local owner session
            settings: Settings (default: global settings)
        """
        self.ledger = ledger if ledger is not None else TransactionLedger()
        self.categories = categories if categories is not None else CategoryStore()
        self.session = session or AuthSession(make_user(DEFAULT_USER_EMAIL))
        self.tools = SpendSightTools(
            self.ledger, self.categories, settings=settings or get_settings()
        )
        self.server = Server("spendsight-mcp")

        # Register handlers
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register MCP protocol handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            """List the tools the current user may call."""
            return [
                Tool(
                    name=schema["name"],
                    description=schema["description"],
                    inputSchema=schema["inputSchema"],
                )
                for schema in create_tool_schemas()
                if self.session.has_permission(TOOL_PERMISSIONS[schema["name"]])
            ]

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
            """Handle tool calls."""
            return await self.dispatch(name, arguments)

    def _check_permission(self, name: str) -> None:
        permission = TOOL_PERMISSIONS[name]
        if not self.session.has_permission(permission):
            raise PermissionDeniedError(
                f"Permission '{permission.value}' is required for {name}"
            )

    async def dispatch(
        self, name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> list[TextContent]:
        """
        Route a tool call and format the reply as JSON text.

        Caller errors come back as "Error: ..." text; unexpected failures are
        logged and reported without crashing the server.
        """
        arguments = arguments or {}
        handler = getattr(self.tools, name, None) if name in TOOL_PERMISSIONS else None
        if handler is None:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]

        try:
            self._check_permission(name)
            result = handler(**arguments)
            if inspect.isawaitable(result):
                result = await result

            return [TextContent(type="text", text=json.dumps(result, indent=2))]

        except (ValueError, SpendSightError) as e:
            # Caller mistakes: not found, failed validation, denied permission
            return [TextContent(type="text", text=f"Error: {str(e)}")]
        except Exception as e:
            logger.exception(f"Error executing tool {name}")
            return [
                TextContent(
                    type="text",
                    text=f"Error executing tool: {str(e)}",
                )
            ]

    async def run(self) -> None:  # pragma: no cover
        """Run the MCP server using stdio transport."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


async def run_server(server: SpendSightServer) -> None:  # pragma: no cover
    """Run a prepared SpendSight MCP server until stdin closes."""
    await server.run()

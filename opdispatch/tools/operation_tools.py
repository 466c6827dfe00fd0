"""MCP tools for dispatching actions and browsing the operation catalog."""

import logging
from typing import Any, Dict, List, Optional

from mcp import Tool

from ..core.action_parser import OperationKind
from ..descriptions.description_engine import DescriptionEngine
from ..dispatcher import Dispatcher
from ..registry.operation_registry import OperationNotFound
from ..utils.response import error_response, success_response

logger = logging.getLogger(__name__)


class OperationTools:
    """Exposes a Dispatcher and its registry as MCP tools."""

    def __init__(self, dispatcher: Dispatcher, engine: Optional[DescriptionEngine] = None):
        """
        Initialize operation tools.

        Args:
            dispatcher: Dispatcher executing the actions
            engine: Description engine for the listing tools
        """
        self.dispatcher = dispatcher
        self.engine = engine or DescriptionEngine(pluralizer=dispatcher.catalog.pluralizer)

    @property
    def registry(self):
        return self.dispatcher.registry

    def get_tools(self) -> List[Tool]:
        """Return operation tools."""
        return [
            Tool(
                name="dispatch_action",
                description="Execute an operation by action name, e.g. 'getAllAuthors' or 'createBlogPost'",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "action": {
                            "type": "string",
                            "description": "Action name; 'get...' actions are queries, all others commands"
                        },
                        "payload": {
                            "type": ["object", "string", "null"],
                            "description": "Operation input as an object or JSON string"
                        },
                        "route_parameters": {
                            "type": "object",
                            "description": "Out-of-band values such as an id",
                            "default": {}
                        },
                        "entity": {
                            "type": "string",
                            "description": "Entity name; when given, 'action' is the bare verb (e.g. 'GetAll')"
                        },
                        "timeout": {
                            "type": "number",
                            "description": "Seconds allowed for the handler"
                        }
                    },
                    "required": ["action"]
                }
            ),
            Tool(
                name="operations_list",
                description="List available operations with generated descriptions",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "kind": {
                            "type": "string",
                            "enum": ["Query", "Command"],
                            "description": "Filter by operation kind"
                        },
                        "entity": {
                            "type": "string",
                            "description": "Filter by entity (singular or plural)"
                        },
                        "group_by_entity": {
                            "type": "boolean",
                            "description": "Group the result by entity",
                            "default": False
                        },
                        "language": {
                            "type": "string",
                            "description": "Language for localized descriptions, e.g. 'es'"
                        }
                    }
                }
            ),
            Tool(
                name="operations_describe",
                description="Describe one operation including its input JSON schema",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "name": {
                            "type": "string",
                            "description": "Operation identifier, e.g. 'GetAllAuthorsQuery'"
                        },
                        "language": {
                            "type": "string",
                            "description": "Language for localized descriptions"
                        }
                    },
                    "required": ["name"]
                }
            ),
            Tool(
                name="operations_schema",
                description="JSON schema covering every operation's action and payload",
                inputSchema={"type": "object", "properties": {}}
            ),
            Tool(
                name="entities_list",
                description="List known entity names and how each was discovered",
                inputSchema={
                    "type": "object",
                    "properties": {
                        "rediscover": {
                            "type": "boolean",
                            "description": "Run a discovery pass before listing",
                            "default": False
                        }
                    }
                }
            ),
        ]

    async def handle_tool(self, name: str, arguments: dict) -> dict:
        """Route tool call to appropriate handler."""
        handlers = {
            "dispatch_action": self._dispatch_action,
            "operations_list": self._list_operations,
            "operations_describe": self._describe_operation,
            "operations_schema": self._operations_schema,
            "entities_list": self._list_entities,
        }

        handler = handlers.get(name)
        if not handler:
            return error_response(f"Unknown operation tool: {name}", code="UNKNOWN_TOOL")

        try:
            return await handler(arguments or {})
        except Exception as e:
            logger.exception(f"Error in {name}")
            return error_response(str(e), code="TOOL_EXECUTION_ERROR", details={"tool": name})

    async def _dispatch_action(self, args: dict) -> dict:
        """Dispatch one action."""
        action = args.get("action")
        if not action:
            return error_response("'action' is required", code="INVALID_ARGUMENTS")

        result = await self.dispatcher.dispatch_action(
            action,
            args.get("payload"),
            args.get("route_parameters") or {},
            entity_hint=args.get("entity"),
            timeout=args.get("timeout"),
        )
        return result.to_response()

    async def _list_operations(self, args: dict) -> dict:
        """List operations, optionally filtered and grouped."""
        kind = OperationKind.from_value(args["kind"]) if args.get("kind") else None
        operations = self.engine.summarize_registry(self.registry, kind=kind, entity=args.get("entity"),
                                                    language=args.get("language"))

        if args.get("group_by_entity"):
            grouped: Dict[str, List[Dict[str, Any]]] = {}
            for op in operations:
                grouped.setdefault(op["entity"], []).append(op)
            return success_response({"entities": grouped, "count": len(operations)})

        return success_response({"operations": operations, "count": len(operations)})

    async def _describe_operation(self, args: dict) -> dict:
        """Full documentation for one operation."""
        name = args.get("name", "")
        try:
            docs = self.registry.get_operation_docs(name)
        except OperationNotFound as e:
            return error_response(str(e), code="OPERATION_NOT_FOUND")

        metadata = self.registry.get(name)
        docs.update(self.engine.summarize(metadata, language=args.get("language")))
        return success_response(docs)

    async def _operations_schema(self, args: dict) -> dict:
        return success_response(self.registry.get_schema())

    async def _list_entities(self, args: dict) -> dict:
        """Catalog contents."""
        catalog = self.dispatcher.catalog
        if args.get("rediscover"):
            catalog.run_discovery()

        entries = [
            {
                "name": entry.name,
                "plural": catalog.pluralizer.pluralize(entry.name),
                "source": entry.source.value,
                "actions": self.registry.actions(entry.name),
            }
            for entry in catalog.entries()
        ]
        return success_response({"entities": entries, "count": len(entries)})

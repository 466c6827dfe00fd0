"""
Dispatcher - Single entry point: parse -> resolve -> bind -> invoke -> wrap.

Callers name an operation with a free-form action ("getAllAuthors",
"createBlogPost") and pass an untyped payload. The dispatcher finds the
typed operation, builds its input and hands it to the mediator.

Failures are returned, not raised:
    OPERATION_NOT_FOUND      nothing resolves for the action
    REQUEST_CREATION_FAILED  the payload does not bind to the input shape
    DISPATCH_ERROR           the handler raised or timed out

Cancellation of the awaiting task propagates to the caller unchanged.

Usage:
    dispatcher = Dispatcher(mediator, registry)
    result = await dispatcher.dispatch_action("getAllAuthors")
    result = await dispatcher.dispatch_action("updateAuthor", {"firstName": "Ada"}, {"id": 7})
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .binding.payload_binder import PayloadBinder
from .core.action_parser import ActionParser, OperationKind, capitalize_first, get_action_parser
from .core.entity_catalog import EntityCatalog
from .mediator import Mediator
from .registry.operation_registry import OperationMetadata, OperationRegistry, get_operation_registry
from .utils.response import error_response, success_response

logger = logging.getLogger(__name__)

OPERATION_NOT_FOUND = "OPERATION_NOT_FOUND"
REQUEST_CREATION_FAILED = "REQUEST_CREATION_FAILED"
DISPATCH_ERROR = "DISPATCH_ERROR"


class DispatchStage(Enum):
    """Pipeline states. Terminal states are never retried."""
    RECEIVED = "received"
    CLASSIFIED = "classified"
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    BOUND = "bound"
    BIND_FAILED = "bind_failed"
    INVOKED = "invoked"
    COMPLETED = "completed"
    FAULTED = "faulted"


@dataclass
class DispatchRequest:
    """
    One dispatch call.

    With entity_hint set, `action` is the bare verb ("GetAll") and the hint
    names the entity; otherwise `action` carries both ("getAllAuthors").
    """
    action: str
    payload: Any = None
    route_parameters: Dict[str, Any] = field(default_factory=dict)
    entity_hint: Optional[str] = None


@dataclass
class DispatchResult:
    """Structured outcome of a dispatch."""
    success: bool
    data: Any = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def stage(self) -> Optional[DispatchStage]:
        return self.metadata.get("stage")

    def to_response(self) -> Dict[str, Any]:
        """Render as an {"ok": ...} envelope."""
        if self.success:
            return success_response(self.data, metadata=self.metadata)
        return error_response(self.error_message or "Dispatch failed", self.error_code, details=self.metadata)


class Dispatcher:
    """Resolves actions to typed operations and executes them through a mediator."""

    def __init__(self, mediator: Mediator,
                 registry: Optional[OperationRegistry] = None,
                 parser: Optional[ActionParser] = None,
                 binder: Optional[PayloadBinder] = None,
                 discover_on_miss: bool = True):
        """
        Initialize dispatcher.

        Args:
            mediator: Handler-execution substrate
            registry: Operation registry (default: process singleton)
            parser: Action parser (default: process singleton)
            binder: Payload binder
            discover_on_miss: Start a background catalog discovery pass when
                an action names an entity the catalog does not know yet
        """
        self.mediator = mediator
        self.registry = registry if registry is not None else get_operation_registry()
        self.parser = parser or get_action_parser()
        self.binder = binder or PayloadBinder()
        self.discover_on_miss = discover_on_miss

    @property
    def catalog(self) -> EntityCatalog:
        return self.registry.catalog

    async def dispatch_action(self, action: str, payload: Any = None,
                              route_parameters: Optional[Mapping[str, Any]] = None, *,
                              entity_hint: Optional[str] = None,
                              timeout: Optional[float] = None) -> DispatchResult:
        """Convenience wrapper around dispatch()."""
        request = DispatchRequest(
            action=action,
            payload=payload,
            route_parameters=dict(route_parameters or {}),
            entity_hint=entity_hint,
        )
        return await self.dispatch(request, timeout=timeout)

    async def dispatch(self, request: DispatchRequest, timeout: Optional[float] = None) -> DispatchResult:
        """
        Dispatch a request.

        Args:
            request: The dispatch request
            timeout: Seconds allowed for the handler call (the only await)

        Returns:
            DispatchResult; never raises for resolution, binding or handler
            failures
        """
        action = (request.action or "").strip()
        _trace(action, DispatchStage.RECEIVED)
        kind = self.parser.classify(action)
        entity, verb = self._split(action, request.entity_hint)
        info: Dict[str, Any] = {"action": action, "kind": kind.value, "entity": entity, "verb": verb}
        _trace(action, DispatchStage.CLASSIFIED)

        logger.info(f"Dispatching '{action}' (auto-detected as {kind.value})")

        metadata = self._resolve(kind, entity, verb, action)
        if metadata is None:
            expected = f"{verb}{capitalize_first(entity)}{kind.value}"
            logger.warning(f"Operation not found: '{action}' (expected type: {expected})")
            return self._failure(
                f"Operation '{action}' not found. Expected type: {expected}",
                OPERATION_NOT_FOUND, DispatchStage.NOT_FOUND, info,
            )

        _trace(action, DispatchStage.RESOLVED)
        info.update(self._describe(metadata))

        bound = self.binder.bind(metadata.input_shape, request.payload, request.route_parameters,
                                 builder=metadata.builder)
        if not bound.success:
            return self._failure(
                f"Failed to create request instance: {bound.error}",
                REQUEST_CREATION_FAILED, DispatchStage.BIND_FAILED, info,
            )

        _trace(action, DispatchStage.BOUND)

        try:
            if timeout is not None:
                data = await asyncio.wait_for(self.mediator.send(bound.instance), timeout)
            else:
                data = await self.mediator.send(bound.instance)
        except asyncio.TimeoutError:
            logger.warning(f"Dispatching '{action}' timed out after {timeout}s")
            return self._failure(
                f"Operation '{metadata.name}' timed out after {timeout}s",
                DISPATCH_ERROR, DispatchStage.FAULTED, info,
            )
        except Exception as e:
            logger.exception(f"Error dispatching '{action}' as {metadata.name}")
            return self._failure(str(e) or type(e).__name__, DISPATCH_ERROR, DispatchStage.FAULTED, info)

        _trace(action, DispatchStage.INVOKED)
        logger.info(f"Successfully dispatched '{action}' as {metadata.name}")
        info["stage"] = DispatchStage.COMPLETED
        return DispatchResult(success=True, data=data, metadata=info)

    # ========================================================================
    # Internal Helpers
    # ========================================================================

    def _split(self, action: str, entity_hint: Optional[str]) -> Tuple[str, str]:
        """(entity, verb) from a hint or by parsing the action."""
        if entity_hint:
            return entity_hint.strip(), capitalize_first(action)

        parsed = self.parser.parse(action, self.catalog.list_names())
        return parsed.entity, parsed.verb

    def _resolve(self, kind: OperationKind, entity: str, verb: str, action: str) -> Optional[OperationMetadata]:
        if entity and self.discover_on_miss and not self.catalog.is_valid(entity):
            self.catalog.start_discovery()

        metadata = self.registry.resolve(kind, entity, verb) if entity else None
        if metadata is not None:
            return metadata

        # Literal conventional identifier, e.g. "getEverything" -> GetEverythingQuery.
        identifier = f"{verb}{capitalize_first(entity)}{kind.value}" if entity else f"{capitalize_first(action)}{kind.value}"
        return self.registry.resolve_identifier(identifier)

    @staticmethod
    def _describe(metadata: OperationMetadata) -> Dict[str, Any]:
        return {
            "kind": metadata.kind.value,
            "entity": metadata.entity,
            "verb": metadata.verb,
            "resolved_type_name": metadata.resolved_type_name,
            "output_type_name": metadata.output_type_name or "None",
        }

    @staticmethod
    def _failure(message: str, code: str, stage: DispatchStage, info: Dict[str, Any]) -> DispatchResult:
        info["stage"] = stage
        return DispatchResult(success=False, error_message=message, error_code=code, metadata=info)


def _trace(action: str, stage: DispatchStage) -> None:
    logger.debug(f"'{action}' -> {stage.value}")

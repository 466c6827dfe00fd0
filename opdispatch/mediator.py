"""
Mediator - Handler-execution substrate used by the Dispatcher.

The Dispatcher never calls handlers directly; it hands the typed request to
a Mediator and awaits the result. Any object with an async send(request)
method will do. InMemoryMediator is a simple reference implementation that
maps input shapes to sync or async handler callables.

Usage:
    mediator = InMemoryMediator()

    @mediator.handler(GetAllAuthorsQuery)
    async def get_all_authors(query):
        return list(context.authors)

    result = await mediator.send(GetAllAuthorsQuery())
"""

import inspect
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class HandlerNotFound(LookupError):
    """No handler is registered for a request type."""
    pass


class Mediator(ABC):
    """Executes a typed request and returns the handler's result."""

    @abstractmethod
    async def send(self, request: Any) -> Any:
        """
        Execute a request.

        Args:
            request: Typed operation instance

        Returns:
            Handler result

        Raises:
            Exception: Whatever the handler raises
        """
        pass


class InMemoryMediator(Mediator):
    """Dictionary-backed mediator; handlers are looked up by request type (MRO aware)."""

    def __init__(self):
        self._handlers: Dict[type, Handler] = {}
        self._lock = threading.Lock()

    def register(self, request_type: type, handler: Handler, replace: bool = False) -> None:
        """
        Register a handler for a request type.

        Raises:
            ValueError: If a handler exists and replace is False
        """
        with self._lock:
            if request_type in self._handlers and not replace:
                raise ValueError(f"Handler already registered for {request_type.__name__}")
            self._handlers[request_type] = handler
        logger.debug(f"Registered handler for {request_type.__name__}")

    def handler(self, request_type: type) -> Callable[[Handler], Handler]:
        """Decorator form of register()."""
        def decorate(func: Handler) -> Handler:
            self.register(request_type, func)
            return func
        return decorate

    def resolve(self, request_type: type) -> Optional[Handler]:
        """Handler for a type or its nearest registered base class."""
        with self._lock:
            for klass in request_type.__mro__:
                found = self._handlers.get(klass)
                if found is not None:
                    return found
        return None

    def handled_types(self) -> List[type]:
        with self._lock:
            return list(self._handlers.keys())

    async def send(self, request: Any) -> Any:
        handler = self.resolve(type(request))
        if handler is None:
            raise HandlerNotFound(f"No handler found for {type(request).__name__}")

        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result

"""
opdispatch - Convention-driven dispatch of free-form actions to typed operations.

Callers send an action name ("getAllAuthors") plus an untyped payload; the
dispatcher classifies the action, resolves the typed operation through the
registry, binds the payload and executes it through a mediator.
"""

__version__ = "0.1.0"

from .dispatcher import (
    DISPATCH_ERROR,
    OPERATION_NOT_FOUND,
    REQUEST_CREATION_FAILED,
    DispatchRequest,
    DispatchResult,
    DispatchStage,
    Dispatcher,
)
from .mediator import HandlerNotFound, InMemoryMediator, Mediator

__all__ = [
    '__version__',
    'Dispatcher',
    'DispatchRequest',
    'DispatchResult',
    'DispatchStage',
    # Error codes
    'OPERATION_NOT_FOUND',
    'REQUEST_CREATION_FAILED',
    'DISPATCH_ERROR',
    # Mediator
    'Mediator',
    'InMemoryMediator',
    'HandlerNotFound',
]

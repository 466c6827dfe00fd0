"""
Operation Registry for opdispatch.

Provides a typed, discoverable index of invocable operations.
"""

from .operation_registry import (
    OperationRegistry,
    OperationMetadata,
    InvocableSpec,
    invocable,
    # Exceptions
    OperationRegistryError,
    OperationNotFound,
    OperationAlreadyRegistered,
    InvalidOperationDescriptor,
    # Singleton
    get_operation_registry,
    reset_operation_registry,
)

__all__ = [
    'OperationRegistry',
    'OperationMetadata',
    'InvocableSpec',
    'invocable',
    # Exceptions
    'OperationRegistryError',
    'OperationNotFound',
    'OperationAlreadyRegistered',
    'InvalidOperationDescriptor',
    # Singleton
    'get_operation_registry',
    'reset_operation_registry',
]

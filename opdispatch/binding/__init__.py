"""Payload binding into typed operation inputs."""

from .payload_binder import BindResult, PayloadBinder

__all__ = ['BindResult', 'PayloadBinder']

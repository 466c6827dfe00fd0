"""
Payload Binder - Turns untyped payloads into typed operation inputs.

Input shapes are pydantic models or dataclasses. Payloads arrive as mappings
or JSON strings; route parameters arrive out of band (e.g. an id taken from a
URL) as a name -> value map.

Binding rules:
- Empty payload (None, "", "null", {}): construct with no arguments. When
  required fields are missing, fill each from the route parameters (matched
  case-insensitively), else the declared default, else the zero value of the
  field type.
- Present payload: keys are matched case-insensitively onto field names and
  aliases. Frozen shapes (value objects) are rebuilt with route parameters
  taking priority over payload values, which take priority over defaults.
  Mutable shapes bind the payload alone.
- A builder supplied with the operation replaces the generic path.

Failures never raise; they come back as BindResult(success=False) whose
message names only declared fields.
"""

import dataclasses
import json
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

Builder = Callable[[Optional[Dict[str, Any]], Dict[str, Any]], Any]

_MISSING = object()

_ZERO_VALUES: Dict[Any, Any] = {
    int: 0,
    float: 0.0,
    bool: False,
    str: "",
    bytes: b"",
}

_ZERO_CONTAINERS: Dict[Any, Callable[[], Any]] = {
    list: list,
    dict: dict,
    set: set,
    frozenset: frozenset,
    tuple: tuple,
}


@dataclass
class BindResult:
    """Outcome of a bind attempt."""
    success: bool
    instance: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, instance: Any) -> "BindResult":
        return cls(success=True, instance=instance)

    @classmethod
    def failed(cls, error: str) -> "BindResult":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class FieldInfo:
    """Binder view of one declared field."""
    name: str
    alias: Optional[str]
    annotation: Any
    default: Any = _MISSING

    @property
    def required(self) -> bool:
        return self.default is _MISSING

    @property
    def key(self) -> str:
        """Key the shape validates by (alias when declared)."""
        return self.alias or self.name


class PayloadBinder:
    """Binds payload + route parameters to pydantic models or dataclasses."""

    def bind(self, shape: type, payload: Any = None,
             route_parameters: Optional[Mapping[str, Any]] = None,
             builder: Optional[Builder] = None) -> BindResult:
        """
        Bind a payload to an instance of `shape`.

        Args:
            shape: Input shape (pydantic model or dataclass)
            payload: Mapping, JSON object string, or None
            route_parameters: Out-of-band values keyed by field name
            builder: Optional custom decode callable

        Returns:
            BindResult carrying the instance or an error message
        """
        route = dict(route_parameters or {})

        try:
            document = normalize_payload(payload)
        except ValueError as e:
            return BindResult.failed(str(e))

        if builder is not None:
            return self._bind_with_builder(shape, builder, document, route)

        try:
            if document is None:
                instance = self._bind_empty(shape, route)
            else:
                instance = self._bind_document(shape, document, route)
        except ValidationError as e:
            message = format_validation_error(e)
            logger.warning(f"Binding {shape.__name__} failed: {message}")
            return BindResult.failed(message)
        except Exception as e:
            logger.warning(f"Binding {shape.__name__} failed: {type(e).__name__}: {e}")
            return BindResult.failed(_construction_failed(shape))

        return BindResult.ok(instance)

    # ========================================================================
    # Binding paths
    # ========================================================================

    def _bind_empty(self, shape: type, route: Dict[str, Any]) -> Any:
        fields = shape_fields(shape)
        if not any(f.required for f in fields):
            return shape()

        values = {}
        for f in fields:
            value = lookup(route, f)
            if value is not _MISSING:
                values[f.key] = value
            elif not f.required:
                values[f.key] = f.default
            else:
                values[f.key] = zero_value(f.annotation)
        return validate(shape, values)

    def _bind_document(self, shape: type, document: Dict[str, Any], route: Dict[str, Any]) -> Any:
        fields = shape_fields(shape)
        values = match_keys(document, fields)

        if is_frozen(shape) and route:
            for f in fields:
                value = lookup(route, f)
                if value is not _MISSING:
                    values[f.key] = value

        return validate(shape, values)

    def _bind_with_builder(self, shape: type, builder: Builder,
                           document: Optional[Dict[str, Any]], route: Dict[str, Any]) -> BindResult:
        try:
            instance = builder(document, route)
        except ValidationError as e:
            return BindResult.failed(format_validation_error(e))
        except Exception as e:
            logger.warning(f"Builder for {shape.__name__} failed: {type(e).__name__}: {e}")
            return BindResult.failed(_construction_failed(shape))

        if not isinstance(instance, shape):
            return BindResult.failed(f"Builder did not produce a {shape.__name__}")
        return BindResult.ok(instance)


# ============================================================================
# Shape introspection
# ============================================================================

def shape_fields(shape: type) -> List[FieldInfo]:
    """Declared fields of a pydantic model or dataclass."""
    if isinstance(shape, type) and issubclass(shape, BaseModel):
        fields = []
        for name, info in shape.model_fields.items():
            default = _MISSING if info.is_required() else info.get_default(call_default_factory=True)
            fields.append(FieldInfo(name, info.alias, info.annotation, default))
        return fields

    if dataclasses.is_dataclass(shape):
        hints = typing.get_type_hints(shape)
        fields = []
        for f in dataclasses.fields(shape):
            if not f.init:
                continue
            if f.default is not dataclasses.MISSING:
                default = f.default
            elif f.default_factory is not dataclasses.MISSING:
                default = f.default_factory()
            else:
                default = _MISSING
            fields.append(FieldInfo(f.name, None, hints.get(f.name, Any), default))
        return fields

    raise TypeError(f"{shape.__name__} is neither a pydantic model nor a dataclass")


def is_frozen(shape: type) -> bool:
    """True for immutable value-object shapes."""
    if isinstance(shape, type) and issubclass(shape, BaseModel):
        return bool(shape.model_config.get("frozen", False))
    params = getattr(shape, "__dataclass_params__", None)
    return bool(params and params.frozen)


def validate(shape: type, values: Dict[str, Any]) -> Any:
    """Validate (and coerce) values into an instance of shape."""
    if isinstance(shape, type) and issubclass(shape, BaseModel):
        return shape.model_validate(values)
    return TypeAdapter(shape).validate_python(values)


def zero_value(annotation: Any) -> Any:
    """
    Zero value of a type annotation.

    Optional[...] and unknown types give None; containers give an empty
    instance.
    """
    origin = typing.get_origin(annotation)
    if origin is typing.Union:
        if type(None) in typing.get_args(annotation):
            return None
        annotation = typing.get_args(annotation)[0]
        origin = typing.get_origin(annotation)

    target = origin or annotation
    if target in _ZERO_CONTAINERS:
        return _ZERO_CONTAINERS[target]()
    return _ZERO_VALUES.get(target)


# ============================================================================
# Payload helpers
# ============================================================================

def normalize_payload(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Normalize a payload to a dict, or None when empty.

    Raises:
        ValueError: If the payload is not a JSON object
    """
    if payload is None:
        return None

    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")

    if isinstance(payload, str):
        text = payload.strip()
        if not text or text == "null":
            return None
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ValueError(f"Payload is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})")
        if payload is None:
            return None

    if isinstance(payload, BaseModel):
        payload = payload.model_dump()

    if not isinstance(payload, Mapping):
        raise ValueError("Payload must be a JSON object")

    return dict(payload) or None


def match_keys(document: Mapping[str, Any], fields: List[FieldInfo]) -> Dict[str, Any]:
    """Map document keys onto field names, ignoring case. Unknown keys pass through."""
    index: Dict[str, str] = {}
    for f in fields:
        index[f.name.lower()] = f.key
        if f.alias:
            index[f.alias.lower()] = f.key

    values: Dict[str, Any] = {}
    for key, value in document.items():
        values[index.get(str(key).lower(), key)] = value
    return values


def lookup(route: Mapping[str, Any], f: FieldInfo) -> Any:
    """Case-insensitive route-parameter lookup by field name or alias."""
    wanted = {f.name.lower()}
    if f.alias:
        wanted.add(f.alias.lower())
    for key, value in route.items():
        if str(key).lower() in wanted:
            return value
    return _MISSING


def _construction_failed(shape: type) -> str:
    return f"Cannot construct {shape.__name__} from the supplied values"


def format_validation_error(error: ValidationError) -> str:
    """Render a ValidationError as "field: message" pairs."""
    parts: List[Tuple[str, str]] = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "payload"
        parts.append((location, item.get("msg", "invalid value")))
    return "; ".join(f"{location}: {message}" for location, message in parts)

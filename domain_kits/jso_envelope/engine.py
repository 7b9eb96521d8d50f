from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Union
import copy
import json
import math

from .errors import (
    EnvelopeDecodeError,
    EnvelopeDepthError,
    EnvelopeInputError,
    EnvelopeValidationError,
)


DEFAULT_MAX_DEPTH = 64
ROOT_PATH = "$"


class ViolationKind(str, Enum):
    NOT_AN_OBJECT = "NotAnObject"
    MISSING_SUCCESS_FIELD = "MissingSuccessField"
    INVALID_SUCCESS_TYPE = "InvalidSuccessType"
    INVALID_DATA_SHAPE = "InvalidDataShape"
    INVALID_META_SHAPE = "InvalidMetaShape"
    INVALID_LINKS_SHAPE = "InvalidLinksShape"
    MISSING_MESSAGE = "MissingMessage"
    INVALID_MESSAGE_TYPE = "InvalidMessageType"
    INVALID_ERRORS_SHAPE = "InvalidErrorsShape"
    INVALID_ERROR_OBJECT = "InvalidErrorObject"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    path: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "path": self.path, "description": self.description}


class _Missing:
    """Marks a failure envelope whose `data` key is absent (null is a legal echo)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Missing":
        return self

    def __deepcopy__(self, memo) -> "_Missing":
        return self


MISSING = _Missing()


@dataclass(frozen=True)
class ErrorObject:
    type: Optional[str] = None
    code: Optional[Union[int, float, Decimal, str]] = None
    message: Optional[str] = None
    source: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for name in ("type", "code", "message", "source"):
            value = getattr(self, name)
            if value is not None:
                out[name] = copy.deepcopy(value)
        return out


@dataclass(frozen=True)
class SuccessEnvelope:
    data: Optional[Union[Dict[str, Any], List[Dict[str, Any]]]] = None
    meta: Optional[Dict[str, Any]] = None
    links: Optional[Dict[str, Any]] = None
    success: bool = field(default=True, init=False)

    @property
    def is_collection(self) -> bool:
        return isinstance(self.data, list)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": True}
        if self.data is not None:
            out["data"] = copy.deepcopy(self.data)
        _put_optional(out, "meta", self.meta)
        _put_optional(out, "links", self.links)
        return out


@dataclass(frozen=True)
class FailureEnvelope:
    message: str
    errors: Optional[Tuple[ErrorObject, ...]] = None
    data: Any = MISSING
    meta: Optional[Dict[str, Any]] = None
    links: Optional[Dict[str, Any]] = None
    success: bool = field(default=False, init=False)

    @property
    def has_data(self) -> bool:
        return self.data is not MISSING

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": False, "message": self.message}
        if self.has_data:
            out["data"] = copy.deepcopy(self.data)
        if self.errors is not None:
            out["errors"] = [e.to_dict() for e in self.errors]
        _put_optional(out, "meta", self.meta)
        _put_optional(out, "links", self.links)
        return out


Envelope = Union[SuccessEnvelope, FailureEnvelope]


@dataclass(frozen=True)
class ValidationResult:
    violations: Tuple[Violation, ...] = ()
    variant: Optional[str] = None
    envelope: Optional[Envelope] = None

    @property
    def valid(self) -> bool:
        return not self.violations

    def kinds(self) -> Tuple[ViolationKind, ...]:
        return tuple(v.kind for v in self.violations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "variant": self.variant,
            "violations": [v.to_dict() for v in self.violations],
        }


def _put_optional(out: Dict[str, Any], key: str, value: Optional[Dict[str, Any]]) -> None:
    if value is not None:
        out[key] = copy.deepcopy(value)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float, Decimal)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "unknown"


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _is_code(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal, str))


def _ensure_json_value(value: Any, max_depth: int) -> None:
    """Raise EnvelopeInputError unless `value` is a plain JSON value.

    Iterative so that deeply nested input is bounded by max_depth rather than
    the interpreter's recursion limit. A cycle has no finite depth and raises
    EnvelopeDepthError. A container shared by several parents is walked again
    only when it is reached deeper than before, since only then can it break
    the depth limit.
    """
    checked_at: Dict[int, int] = {}
    on_path: set = set()
    stack: List[Tuple[Any, int, bool]] = [(value, 0, False)]
    while stack:
        current, depth, leaving = stack.pop()
        if leaving:
            on_path.discard(id(current))
            continue
        if depth > max_depth:
            raise EnvelopeDepthError(max_depth)
        if current is None or isinstance(current, (bool, int, str)):
            continue
        if isinstance(current, float) and not math.isfinite(current):
            raise EnvelopeInputError("NaN and Infinity are not valid JSON numbers")
        if isinstance(current, Decimal) and not current.is_finite():
            raise EnvelopeInputError("NaN and Infinity are not valid JSON numbers")
        if isinstance(current, (float, Decimal)):
            continue
        if not isinstance(current, dict) and not _is_array(current):
            raise EnvelopeInputError(f"{type(current).__name__} is not a JSON value")

        key = id(current)
        if key in on_path:
            raise EnvelopeDepthError(max_depth)
        if checked_at.get(key, -1) >= depth:
            continue
        checked_at[key] = depth
        on_path.add(key)
        stack.append((current, depth, True))

        if isinstance(current, dict):
            for name, item in current.items():
                if not isinstance(name, str):
                    raise EnvelopeInputError(
                        f"JSON object keys must be strings, got {type(name).__name__}"
                    )
                stack.append((item, depth + 1, False))
        else:
            stack.extend((item, depth + 1, False) for item in current)


def _check_object_field(envelope: Dict[str, Any], name: str, kind: ViolationKind) -> List[Violation]:
    if name not in envelope or isinstance(envelope[name], dict):
        return []
    return [
        Violation(kind, name, f"'{name}' must be a JSON object, got {_type_name(envelope[name])}")
    ]


def _check_success_branch(envelope: Dict[str, Any]) -> List[Violation]:
    if "data" not in envelope:
        return []

    data = envelope["data"]
    if isinstance(data, dict):
        return []

    if _is_array(data):
        return [
            Violation(
                ViolationKind.INVALID_DATA_SHAPE,
                f"data[{idx}]",
                f"collection items must be JSON objects, got {_type_name(item)}",
            )
            for idx, item in enumerate(data)
            if not isinstance(item, dict)
        ]

    description = f"'data' must be an object or an array of objects, got {_type_name(data)}"
    if data is None:
        description += "; a missing resource is reported with a failure envelope"
    return [Violation(ViolationKind.INVALID_DATA_SHAPE, "data", description)]


_ERROR_OBJECT_FIELDS = (
    ("type", lambda v: isinstance(v, str), "a string"),
    ("code", _is_code, "a number or a string"),
    ("message", lambda v: isinstance(v, str), "a string"),
    ("source", lambda v: isinstance(v, dict), "a JSON object"),
)


def _check_error_object(item: Any, idx: int) -> List[Violation]:
    path = f"errors[{idx}]"
    if not isinstance(item, dict):
        return [
            Violation(
                ViolationKind.INVALID_ERROR_OBJECT,
                path,
                f"error entries must be JSON objects, got {_type_name(item)}",
            )
        ]

    out: List[Violation] = []
    for name, accepts, expected in _ERROR_OBJECT_FIELDS:
        if name in item and not accepts(item[name]):
            out.append(
                Violation(
                    ViolationKind.INVALID_ERROR_OBJECT,
                    f"{path}.{name}",
                    f"'{name}' must be {expected}, got {_type_name(item[name])}",
                )
            )
    return out


def _check_failure_branch(envelope: Dict[str, Any]) -> List[Violation]:
    out: List[Violation] = []

    if "message" not in envelope:
        out.append(
            Violation(ViolationKind.MISSING_MESSAGE, "message", "failure envelope requires a 'message'")
        )
    elif not isinstance(envelope["message"], str):
        out.append(
            Violation(
                ViolationKind.INVALID_MESSAGE_TYPE,
                "message",
                f"'message' must be a string, got {_type_name(envelope['message'])}",
            )
        )
    elif envelope["message"] == "":
        out.append(Violation(ViolationKind.MISSING_MESSAGE, "message", "'message' must not be empty"))

    if "errors" in envelope:
        errors = envelope["errors"]
        if not _is_array(errors):
            out.append(
                Violation(
                    ViolationKind.INVALID_ERRORS_SHAPE,
                    "errors",
                    f"'errors' must be an array, got {_type_name(errors)}",
                )
            )
        else:
            for idx, item in enumerate(errors):
                out.extend(_check_error_object(item, idx))

    # data is an echo of client input on failure; any JSON value is accepted.
    return out


def _build_envelope(envelope: Dict[str, Any]) -> Envelope:
    snapshot = copy.deepcopy(envelope)
    if snapshot["success"]:
        data = snapshot.get("data")
        if isinstance(data, tuple):
            data = list(data)
        return SuccessEnvelope(data=data, meta=snapshot.get("meta"), links=snapshot.get("links"))

    errors = None
    if "errors" in snapshot:
        errors = tuple(
            ErrorObject(
                type=item.get("type"),
                code=item.get("code"),
                message=item.get("message"),
                source=item.get("source"),
            )
            for item in snapshot["errors"]
        )
    return FailureEnvelope(
        message=snapshot["message"],
        errors=errors,
        data=snapshot.get("data", MISSING),
        meta=snapshot.get("meta"),
        links=snapshot.get("links"),
    )


def validate(value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> ValidationResult:
    """Check `value` against the JSO envelope rules.

    Every independent rule is evaluated, so one call reports all problems.
    Malformed envelopes never raise; only a value that is not JSON at all
    raises EnvelopeInputError.
    """
    _ensure_json_value(value, max_depth)

    if not isinstance(value, dict):
        return ValidationResult(
            violations=(
                Violation(
                    ViolationKind.NOT_AN_OBJECT,
                    ROOT_PATH,
                    f"envelope must be a JSON object, got {_type_name(value)}",
                ),
            )
        )

    violations: List[Violation] = []
    variant: Optional[str] = None

    if "success" not in value:
        violations.append(
            Violation(ViolationKind.MISSING_SUCCESS_FIELD, "success", "envelope requires a 'success' field")
        )
    elif not isinstance(value["success"], bool):
        violations.append(
            Violation(
                ViolationKind.INVALID_SUCCESS_TYPE,
                "success",
                f"'success' must be a boolean, got {_type_name(value['success'])}",
            )
        )
    elif value["success"]:
        variant = "success"
        violations.extend(_check_success_branch(value))
    else:
        variant = "failure"
        violations.extend(_check_failure_branch(value))

    violations.extend(_check_object_field(value, "meta", ViolationKind.INVALID_META_SHAPE))
    violations.extend(_check_object_field(value, "links", ViolationKind.INVALID_LINKS_SHAPE))

    envelope = None if violations else _build_envelope(value)
    return ValidationResult(violations=tuple(violations), variant=variant, envelope=envelope)


def parse_envelope(value: Any, *, max_depth: int = DEFAULT_MAX_DEPTH) -> Envelope:
    """Return the typed variant for `value` or raise EnvelopeValidationError."""
    result = validate(value, max_depth=max_depth)
    if not result.valid:
        raise EnvelopeValidationError(result.violations)
    return result.envelope


def _reject_constant(name: str) -> Any:
    raise EnvelopeDecodeError(f"{name} is not a valid JSON number")


def _parse_float(literal: str) -> Union[float, Decimal]:
    # 1e400 is a valid JSON number that overflows a float; keep it exact.
    number = float(literal)
    if math.isfinite(number):
        return number
    return Decimal(literal)


def validate_json_text(text: Union[str, bytes], *, max_depth: int = DEFAULT_MAX_DEPTH) -> ValidationResult:
    """Decode JSON text and validate the result.

    Text that does not decode raises EnvelopeDecodeError, which is kept apart
    from envelope violations.
    """
    try:
        value = json.loads(text, parse_constant=_reject_constant, parse_float=_parse_float)
    except EnvelopeDecodeError:
        raise
    except RecursionError as exc:
        raise EnvelopeDepthError(max_depth) from exc
    except ValueError as exc:
        raise EnvelopeDecodeError(f"Invalid JSON: {exc}") from exc
    return validate(value, max_depth=max_depth)

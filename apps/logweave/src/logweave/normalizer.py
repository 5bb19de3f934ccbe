"""
Call-shape normalization.

Every supported way of calling a log method is parsed once into a tagged
union of call shapes, then turned into a fresh canonical record. Downstream
stages only ever see the canonical record.

Supported shapes (``meta`` is any mapping, ``cb`` an optional trailing callable):

    log(level, message)            log(level, message, meta)
    log(level, meta)               log(entry)          # entry carries "level"
    info(message) / info(message, meta) / info(meta)   # level implied

Keyword arguments are merged into the meta.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Union

from .exceptions import ValidationError
from .levels import LogLevel

Callback = Callable[..., Any]

# Keys owned by the enrichment chain; callers cannot set them.
RESERVED_KEYS = frozenset({"timestamp"})


@dataclass(frozen=True)
class LevelMessageCall:
    """``(level, message[, meta])``: an explicit message string."""

    level: LogLevel
    message: str
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LevelMetaCall:
    """``(level, meta)``: message, if any, comes from ``meta["message"]``."""

    level: LogLevel
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EntryCall:
    """``(entry)``: a single mapping carrying ``level`` and everything else."""

    level: LogLevel
    entry: Mapping[str, Any]


CallShape = Union[LevelMessageCall, LevelMetaCall, EntryCall]


@dataclass(frozen=True)
class ParsedCall:
    shape: CallShape
    callback: Optional[Callback] = None

    @property
    def level(self) -> LogLevel:
        return self.shape.level


def _invalid_shape(args: Sequence[Any], reason: str) -> ValidationError:
    return ValidationError(
        f"Unsupported call shape: {reason}",
        code="INVALID_CALL_SHAPE",
        details={"argument_types": [type(a).__name__ for a in args]},
    )


def _merge_kwargs(meta: Mapping[str, Any], kwargs: Mapping[str, Any]) -> Mapping[str, Any]:
    if not kwargs:
        return meta
    return {**meta, **kwargs}


def parse_call(
    args: Sequence[Any],
    kwargs: Optional[Mapping[str, Any]] = None,
    implied_level: Optional[LogLevel] = None,
) -> ParsedCall:
    """Resolve positional/keyword arguments of a log call into a ``ParsedCall``.

    Raises:
        ValidationError: unknown level or an argument pattern that matches no shape.
    """
    kwargs = kwargs or {}
    args = list(args)
    callback: Optional[Callback] = None
    if args and callable(args[-1]) and not isinstance(args[-1], (str, Mapping)):
        callback = args.pop()

    if implied_level is None:
        if not args:
            raise _invalid_shape(args, "a level or an entry is required")
        first = args.pop(0)
        if isinstance(first, Mapping):
            if args:
                raise _invalid_shape([first, *args], "an entry takes no further arguments")
            if "level" not in first:
                raise ValidationError(
                    "Log entry has no level",
                    code="INVALID_LEVEL",
                    details={"keys": sorted(map(str, first))},
                )
            entry = _merge_kwargs(first, kwargs)
            return ParsedCall(EntryCall(LogLevel.parse(first["level"]), entry), callback)
        level = LogLevel.parse(first)
    else:
        level = implied_level

    if len(args) == 1 and isinstance(args[0], Mapping):
        return ParsedCall(LevelMetaCall(level, _merge_kwargs(args[0], kwargs)), callback)
    if len(args) in (1, 2) and isinstance(args[0], str):
        meta: Mapping[str, Any] = {}
        if len(args) == 2:
            if not isinstance(args[1], Mapping):
                raise _invalid_shape(args, "meta must be a mapping")
            meta = args[1]
        return ParsedCall(LevelMessageCall(level, args[0], _merge_kwargs(meta, kwargs)), callback)
    if not args and kwargs:
        return ParsedCall(LevelMetaCall(level, dict(kwargs)), callback)
    raise _invalid_shape(args, "expected a message string, a meta mapping, or both")


def coerce_message(value: Any) -> Any:
    # Mappings are left for the disassembly stage; None means "no message".
    if value is None or isinstance(value, (str, Mapping)):
        return value
    return str(value)


def _copy_meta(meta: Mapping[str, Any], exclude: frozenset[str]) -> Dict[str, Any]:
    return {key: value for key, value in meta.items() if key not in exclude and key not in RESERVED_KEYS}


def normalize(call: CallShape) -> Dict[str, Any]:
    """Build a fresh canonical record for a parsed call shape.

    The caller's mappings are only read. The explicit message argument wins
    over a ``message`` key in the meta.
    """
    if isinstance(call, LevelMessageCall):
        record = _copy_meta(call.meta, frozenset({"level", "message"}))
        message: Any = call.message
    elif isinstance(call, LevelMetaCall):
        record = _copy_meta(call.meta, frozenset({"level", "message"}))
        message = coerce_message(call.meta.get("message"))
    elif isinstance(call, EntryCall):
        record = _copy_meta(call.entry, frozenset({"level", "message"}))
        message = coerce_message(call.entry.get("message"))
    else:
        raise TypeError(f"Unknown call shape: {type(call).__name__}")

    record["level"] = call.level.value
    if message is not None:
        record["message"] = message
    return record

"""
Serializable mixin for dataclasses.

Provides to_dict()/from_dict() using dataclasses.fields() introspection.
Handles nested Serializable objects and lists or string-keyed dicts of them.

Deserialization is lenient for optional data: fields that have defaults may
be absent, so registry files written by older versions keep loading. A
missing required field raises MissingFieldError naming the class and field.
"""

import dataclasses
from typing import get_args, get_origin, get_type_hints


class MissingFieldError(ValueError):
    """Raised when serialized data lacks a field with no default."""

    def __init__(self, cls_name: str, field_name: str):
        super().__init__(f"{cls_name} is missing required field '{field_name}'")
        self.cls_name = cls_name
        self.field_name = field_name


class Serializable:
    """Mixin that adds to_dict() and from_dict() to dataclasses.

    Usage:
        @dataclass
        class Project(Serializable):
            id: str
            name: str
            repository_ids: list[str] = field(default_factory=list)

        d = Project("p1", "web").to_dict()
        obj = Project.from_dict(d)
    """

    def to_dict(self) -> dict:
        return {
            f.name: _serialize(getattr(self, f.name))
            for f in dataclasses.fields(self)  # type: ignore[arg-type]
        }

    @classmethod
    def from_dict(cls, d: dict):
        hints = get_type_hints(cls)
        kwargs = {}
        for f in dataclasses.fields(cls):  # type: ignore[arg-type]
            if f.name not in d:
                has_default = (
                    f.default is not dataclasses.MISSING
                    or f.default_factory is not dataclasses.MISSING  # type: ignore[misc]
                )
                if not has_default and f.init:
                    raise MissingFieldError(cls.__name__, f.name)
                continue
            if not f.init:
                continue
            kwargs[f.name] = _deserialize(d[f.name], hints.get(f.name))
        return cls(**kwargs)


def _serialize(value):
    if isinstance(value, Serializable):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def _deserialize(value, field_type):
    if value is None:
        return None

    actual_type = _unwrap_optional(field_type)

    if (
        isinstance(value, dict)
        and isinstance(actual_type, type)
        and issubclass(actual_type, Serializable)
    ):
        return actual_type.from_dict(value)

    if isinstance(value, list):
        inner = _container_arg(actual_type, list, 0)
        if isinstance(inner, type) and issubclass(inner, Serializable):
            return [inner.from_dict(v) if isinstance(v, dict) else v for v in value]
        return list(value)

    if isinstance(value, dict):
        inner = _container_arg(actual_type, dict, 1)
        if isinstance(inner, type) and issubclass(inner, Serializable):
            return {k: inner.from_dict(v) for k, v in value.items()}
        return dict(value)

    return value


def _unwrap_optional(tp):
    """Unwrap X | None to X."""
    origin = get_origin(tp)
    if origin is type(int | str):  # types.UnionType for X | Y syntax
        non_none = [a for a in get_args(tp) if a is not type(None)]
        if len(non_none) == 1:
            return non_none[0]
    return tp


def _container_arg(tp, container, index):
    """Extract the index-th type argument of list[T] or dict[K, V]."""
    if get_origin(tp) is container:
        args = get_args(tp)
        if len(args) > index:
            return args[index]
    return None

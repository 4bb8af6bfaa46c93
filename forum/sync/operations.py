"""Atomic document operations understood by every collection store."""
from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence, Union


@dataclass(frozen=True, slots=True)
class Set:
    """Replace the whole document, creating it when missing."""

    data: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Merge:
    """Merge fields into the document, creating it when missing."""

    data: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Increment:
    field: str
    amount: int | float = 1


@dataclass(frozen=True, slots=True)
class ArrayUnion:
    field: str
    values: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class ArrayRemove:
    field: str
    values: tuple[Any, ...] = ()


@dataclass(frozen=True, slots=True)
class Delete:
    pass


Operation = Union[Set, Merge, Increment, ArrayUnion, ArrayRemove, Delete]

# Field transforms require an existing document, like an update would.
FIELD_TRANSFORMS = (Increment, ArrayUnion, ArrayRemove)


def array_union(field_name: str, *values: Any) -> ArrayUnion:
    return ArrayUnion(field_name, tuple(values))


def array_remove(field_name: str, *values: Any) -> ArrayRemove:
    return ArrayRemove(field_name, tuple(values))


def increment(field_name: str, amount: int | float = 1) -> Increment:
    return Increment(field_name, amount)


def normalize_operations(operation: Operation | Sequence[Operation]) -> tuple[Operation, ...]:
    if isinstance(operation, (list, tuple)):
        operations = tuple(operation)
    else:
        operations = (operation,)
    if not operations:
        raise ValueError("At least one operation is required")
    if any(isinstance(op, Delete) for op in operations) and len(operations) > 1:
        raise ValueError("Delete cannot be combined with other operations")
    return operations


def requires_existing(operations: Iterable[Operation]) -> bool:
    ops = list(operations)
    if any(isinstance(op, (Set, Merge)) for op in ops):
        return False
    return any(isinstance(op, FIELD_TRANSFORMS) for op in ops)


def _deep_merge(target: dict[str, Any], patch: Mapping[str, Any]) -> None:
    for key, value in patch.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


def apply_operations(current: Mapping[str, Any] | None, operations: Iterable[Operation]) -> dict[str, Any] | None:
    """Return the document data after ``operations``; ``None`` means deleted.

    Pure function; ``current`` is never modified.
    """

    data: dict[str, Any] | None = copy.deepcopy(dict(current)) if current is not None else None
    for op in operations:
        if isinstance(op, Delete):
            data = None
        elif isinstance(op, Set):
            data = copy.deepcopy(dict(op.data))
        elif isinstance(op, Merge):
            if data is None:
                data = {}
            _deep_merge(data, op.data)
        else:
            if data is None:
                data = {}
            if isinstance(op, Increment):
                existing = data.get(op.field)
                base = existing if isinstance(existing, (int, float)) and not isinstance(existing, bool) else 0
                data[op.field] = base + op.amount
            elif isinstance(op, ArrayUnion):
                existing_list = data.get(op.field)
                items = list(existing_list) if isinstance(existing_list, list) else []
                for value in op.values:
                    if value not in items:
                        items.append(value)
                data[op.field] = items
            elif isinstance(op, ArrayRemove):
                existing_list = data.get(op.field)
                items = list(existing_list) if isinstance(existing_list, list) else []
                data[op.field] = [item for item in items if item not in op.values]
            else:  # pragma: no cover - exhaustive over Operation
                raise TypeError(f"Unsupported operation: {op!r}")
    return data


__all__ = [
    "Set",
    "Merge",
    "Increment",
    "ArrayUnion",
    "ArrayRemove",
    "Delete",
    "Operation",
    "array_union",
    "array_remove",
    "increment",
    "apply_operations",
    "normalize_operations",
    "requires_existing",
]

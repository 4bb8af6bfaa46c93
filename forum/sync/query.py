"""Query description and in-process evaluation for document collections."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Literal, Mapping, Sequence

from .errors import SubscriptionError

FilterOp = Literal["==", "!=", "<", "<=", ">", ">=", "in", "array-contains"]

_MISSING = object()


@dataclass(frozen=True, slots=True)
class Document:
    """A document as delivered to observers: id, owning collection, field data."""

    id: str
    collection: str
    data: Mapping[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.data}


@dataclass(frozen=True, slots=True)
class FieldFilter:
    field: str
    op: FilterOp
    value: Any

    def matches(self, data: Mapping[str, Any]) -> bool:
        current = data.get(self.field, _MISSING)
        if self.op == "==":
            if self.value is None:
                return current is _MISSING or current is None
            return current == self.value
        if self.op == "!=":
            if self.value is None:
                return current is not _MISSING and current is not None
            return current is not _MISSING and current != self.value
        if self.op == "in":
            return current is not _MISSING and current in self.value
        if self.op == "array-contains":
            return isinstance(current, list) and self.value in current
        if current is _MISSING or current is None:
            return False
        try:
            if self.op == "<":
                return current < self.value
            if self.op == "<=":
                return current <= self.value
            if self.op == ">":
                return current > self.value
            if self.op == ">=":
                return current >= self.value
        except TypeError:
            return False
        raise ValueError(f"Unsupported filter operator: {self.op}")


@dataclass(frozen=True, slots=True)
class Order:
    field: str
    descending: bool = False


@dataclass(frozen=True, slots=True)
class Query:
    """One collection, a conjunction of filters, a sort key and a size bound."""

    collection: str
    filters: tuple[FieldFilter, ...] = ()
    order: Order | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 0:
            raise ValueError("limit must be >= 0")

    def where(self, field_name: str, op: FilterOp, value: Any) -> "Query":
        return Query(self.collection, self.filters + (FieldFilter(field_name, op, value),), self.order, self.limit)

    def order_by(self, field_name: str, *, descending: bool = False) -> "Query":
        return Query(self.collection, self.filters, Order(field_name, descending), self.limit)

    def limit_to(self, count: int) -> "Query":
        return Query(self.collection, self.filters, self.order, count)

    def matches(self, data: Mapping[str, Any]) -> bool:
        return all(item.matches(data) for item in self.filters)


def sort_documents(documents: Iterable[Document], order: Order | None) -> list[Document]:
    """Sort by the order field with ties broken by ascending document id.

    Raises ``SubscriptionError`` with code ``failed-precondition`` when a
    document lacks the order field.
    """

    items = list(documents)
    by_id = sorted(items, key=lambda doc: doc.id)
    if order is None:
        return by_id
    for doc in by_id:
        if doc.data.get(order.field) is None:
            raise SubscriptionError(
                f"Document {doc.collection}/{doc.id} has no '{order.field}' to order by",
                code="failed-precondition",
            )
    # Stable sort keeps the id ordering among equal keys in both directions.
    if order.descending:
        groups: dict[Any, list[Document]] = {}
        for doc in by_id:
            groups.setdefault(doc.data[order.field], []).append(doc)
        result: list[Document] = []
        for key in sorted(groups, reverse=True):
            result.extend(groups[key])
        return result
    return sorted(by_id, key=lambda doc: doc.data[order.field])


def evaluate(query: Query, documents: Iterable[Document]) -> list[Document]:
    """Apply filters, ordering and limit to a collection's documents."""

    matching = [doc for doc in documents if doc.collection == query.collection and query.matches(doc.data)]
    ordered = sort_documents(matching, query.order)
    if query.limit is not None:
        ordered = ordered[: query.limit]
    return ordered


def snapshot_key(documents: Sequence[Document]) -> tuple[tuple[str, Any], ...]:
    """Comparable fingerprint used to skip deliveries that change nothing."""

    return tuple((doc.id, _freeze(doc.data)) for doc in documents)


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return tuple(sorted((key, _freeze(item)) for key, item in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    return value


__all__ = [
    "Document",
    "FieldFilter",
    "FilterOp",
    "Order",
    "Query",
    "evaluate",
    "snapshot_key",
    "sort_documents",
]

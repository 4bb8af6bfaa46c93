"""Unit tests for query evaluation and atomic document operations."""
from __future__ import annotations

import pytest

from forum.sync.errors import SubscriptionError
from forum.sync.operations import (
    ArrayRemove,
    ArrayUnion,
    Delete,
    Increment,
    Merge,
    Set,
    apply_operations,
    normalize_operations,
    requires_existing,
)
from forum.sync.query import Document, FieldFilter, Order, Query, evaluate, snapshot_key


def _post(doc_id: str, created_at: int | None, **extra) -> Document:
    data = dict(extra)
    if created_at is not None:
        data["createdAt"] = created_at
    return Document(doc_id, "posts", data)


def test_descending_order_applies_limit_after_sorting() -> None:
    documents = [_post("p1", 1), _post("p2", 2), _post("p3", 3)]
    query = Query("posts", order=Order("createdAt", descending=True), limit=2)

    assert [doc.id for doc in evaluate(query, documents)] == ["p3", "p2"]


def test_ties_are_broken_by_ascending_id_in_both_directions() -> None:
    documents = [_post("b", 5), _post("c", 5), _post("a", 5), _post("z", 1)]

    ascending = evaluate(Query("posts", order=Order("createdAt")), documents)
    descending = evaluate(Query("posts", order=Order("createdAt", descending=True)), documents)

    assert [doc.id for doc in ascending] == ["z", "a", "b", "c"]
    assert [doc.id for doc in descending] == ["a", "b", "c", "z"]


def test_missing_order_field_is_a_failed_precondition() -> None:
    documents = [_post("p1", 1), _post("p2", None)]

    with pytest.raises(SubscriptionError) as excinfo:
        evaluate(Query("posts", order=Order("createdAt")), documents)

    assert excinfo.value.code == "failed-precondition"


def test_filtered_out_documents_do_not_need_the_order_field() -> None:
    documents = [_post("p1", 1, authorId="u1"), _post("p2", None, authorId="u2")]
    query = Query("posts", (FieldFilter("authorId", "==", "u1"),), Order("createdAt"))

    assert [doc.id for doc in evaluate(query, documents)] == ["p1"]


def test_negative_limit_is_rejected() -> None:
    with pytest.raises(ValueError):
        Query("posts", limit=-1)


def test_zero_limit_yields_empty_result() -> None:
    assert evaluate(Query("posts", limit=0), [_post("p1", 1)]) == []


def test_equality_with_none_matches_missing_and_null_fields() -> None:
    lobby = FieldFilter("chatId", "==", None)

    assert lobby.matches({"text": "hi"})
    assert lobby.matches({"chatId": None})
    assert not lobby.matches({"chatId": "dm_a_b"})


def test_array_contains_and_in_filters() -> None:
    assert FieldFilter("participants", "array-contains", "u1").matches({"participants": ["u1", "u2"]})
    assert not FieldFilter("participants", "array-contains", "u3").matches({"participants": ["u1", "u2"]})
    assert not FieldFilter("participants", "array-contains", "u1").matches({"participants": "u1"})
    assert FieldFilter("status", "in", ("pending", "approved")).matches({"status": "pending"})
    assert not FieldFilter("status", "in", ("approved",)).matches({})


def test_comparison_filters_skip_missing_and_mismatched_types() -> None:
    assert FieldFilter("createdAt", ">", 5).matches({"createdAt": 6})
    assert not FieldFilter("createdAt", ">", 5).matches({})
    assert not FieldFilter("createdAt", ">", 5).matches({"createdAt": "late"})


def test_query_builder_methods_return_new_queries() -> None:
    base = Query("posts")
    built = base.where("authorId", "==", "u1").order_by("createdAt", descending=True).limit_to(3)

    assert base.filters == ()
    assert built.filters == (FieldFilter("authorId", "==", "u1"),)
    assert built.order == Order("createdAt", descending=True)
    assert built.limit == 3


def test_snapshot_key_ignores_dict_ordering() -> None:
    first = [Document("p1", "posts", {"a": 1, "b": [1, 2]})]
    second = [Document("p1", "posts", {"b": [1, 2], "a": 1})]

    assert snapshot_key(first) == snapshot_key(second)
    assert snapshot_key(first) != snapshot_key([Document("p1", "posts", {"a": 2, "b": [1, 2]})])


def test_array_union_never_duplicates_and_array_remove_clears_all() -> None:
    data = apply_operations({"likes": ["u1"]}, [ArrayUnion("likes", ("u1", "u2"))])
    assert data == {"likes": ["u1", "u2"]}

    data = apply_operations({"likes": ["u1", "u2", "u1"]}, [ArrayRemove("likes", ("u1",))])
    assert data == {"likes": ["u2"]}


def test_increment_starts_from_zero_for_missing_or_non_numeric_fields() -> None:
    assert apply_operations({}, [Increment("commentsCount", 2)]) == {"commentsCount": 2}
    assert apply_operations({"commentsCount": True}, [Increment("commentsCount")]) == {"commentsCount": 1}
    assert apply_operations({"commentsCount": 3}, [Increment("commentsCount", -1)]) == {"commentsCount": 2}


def test_merge_is_deep_and_set_replaces() -> None:
    current = {"socials": {"telegram": "@a", "facebook": "fb"}, "bio": "old"}

    merged = apply_operations(current, [Merge({"socials": {"telegram": "@b"}})])
    assert merged == {"socials": {"telegram": "@b", "facebook": "fb"}, "bio": "old"}

    replaced = apply_operations(current, [Set({"bio": "new"})])
    assert replaced == {"bio": "new"}


def test_apply_operations_does_not_mutate_input() -> None:
    current = {"likes": ["u1"]}

    apply_operations(current, [ArrayUnion("likes", ("u2",))])

    assert current == {"likes": ["u1"]}


def test_delete_returns_none_and_cannot_be_combined() -> None:
    assert apply_operations({"a": 1}, [Delete()]) is None
    with pytest.raises(ValueError):
        normalize_operations([Delete(), Merge({"a": 1})])
    with pytest.raises(ValueError):
        normalize_operations([])


def test_field_transforms_require_an_existing_document() -> None:
    assert requires_existing([Increment("commentsCount")])
    assert requires_existing([ArrayUnion("likes", ("u1",)), ArrayRemove("dislikes", ("u1",))])
    assert not requires_existing([Merge({"a": 1}), Increment("commentsCount")])
    assert not requires_existing([Delete()])

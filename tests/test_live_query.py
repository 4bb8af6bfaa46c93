"""Live query subscription behaviour against the SQL-backed store."""
from __future__ import annotations

import asyncio

from forum.sync.errors import SubscriptionError
from forum.sync.live_query import (
    Snapshot,
    SubscriptionHandle,
    SubscriptionState,
    close_subscription,
    open_query,
    open_subscription,
)
from forum.sync.operations import Delete, Merge, Set
from forum.sync.query import Order, Query


def _feed(limit: int | None = None) -> Query:
    return Query("posts", order=Order("createdAt", descending=True), limit=limit)


def test_scenario_a_newest_posts_window_moves_with_inserts(store) -> None:
    async def scenario() -> list[list[str]]:
        for index in (1, 2, 3):
            await store.mutate("posts", f"post{index}", Set({"createdAt": index}))
        seen: list[list[str]] = []
        handle = await open_query(store, _feed(2), lambda snapshot: seen.append(snapshot.ids))
        await store.mutate("posts", "post4", Set({"createdAt": 4}))
        handle.close()
        return seen

    assert asyncio.run(scenario()) == [["post3", "post2"], ["post4", "post3"]]


def test_initial_snapshot_is_delivered_before_open_returns(store) -> None:
    async def scenario():
        await store.mutate("posts", "p1", Set({"createdAt": 1}))
        handle = await open_subscription(store, "posts", order=Order("createdAt"))
        return handle

    handle = asyncio.run(scenario())

    assert handle.state is SubscriptionState.ACTIVE
    assert handle.last_snapshot is not None
    assert handle.last_snapshot.ids == ["p1"]
    assert handle.last_snapshot.sequence == 1


def test_unrelated_writes_do_not_redeliver(store) -> None:
    async def scenario() -> int:
        await store.mutate("posts", "p1", Set({"createdAt": 1, "authorId": "u1"}))
        snapshots: list[Snapshot] = []
        handle = await open_query(store, _feed().where("authorId", "==", "u1"), snapshots.append)
        await store.mutate("posts", "p2", Set({"createdAt": 2, "authorId": "u2"}))
        await store.mutate("comments", "c1", Set({"createdAt": 3, "postId": "p1"}))
        handle.close()
        return len(snapshots)

    assert asyncio.run(scenario()) == 1


def test_removal_from_result_set_is_delivered(store) -> None:
    async def scenario() -> list[list[str]]:
        await store.mutate("posts", "p1", Set({"createdAt": 1}))
        await store.mutate("posts", "p2", Set({"createdAt": 2}))
        seen: list[list[str]] = []
        handle = await open_query(store, _feed(), lambda snapshot: seen.append(snapshot.ids))
        await store.mutate("posts", "p2", Delete())
        handle.close()
        return seen

    assert asyncio.run(scenario()) == [["p2", "p1"], ["p1"]]


def test_close_inside_observer_stops_further_deliveries(store) -> None:
    async def scenario() -> tuple[int, int]:
        calls: list[Snapshot] = []
        handle = None

        def observer(snapshot: Snapshot) -> None:
            calls.append(snapshot)
            if len(calls) == 2:
                handle.close()
                handle.close()

        handle = await open_query(store, _feed(), observer)
        await store.mutate("posts", "p1", Set({"createdAt": 1}))
        await store.mutate("posts", "p2", Set({"createdAt": 2}))
        await store.mutate("posts", "p3", Set({"createdAt": 3}))
        return len(calls), store.listener_count

    calls, listeners = asyncio.run(scenario())

    assert calls == 2
    assert listeners == 0


def test_close_during_initial_delivery_releases_listener(store) -> None:
    async def scenario():
        holder: dict[str, object] = {}

        def observer(snapshot: Snapshot) -> None:
            holder["handle"].close()  # type: ignore[attr-defined]

        # Bind the handle before the first delivery can reach the observer.
        handle = SubscriptionHandle(_feed(), observer)
        holder["handle"] = handle
        unsubscribe = await store.subscribe(handle.query, handle._deliver, handle._fail)
        handle._attach(unsubscribe)
        await store.mutate("posts", "p1", Set({"createdAt": 1}))
        return handle, store.listener_count

    handle, listeners = asyncio.run(scenario())

    assert handle.state is SubscriptionState.CLOSED
    assert listeners == 0


def test_identical_queries_hold_separate_listeners(store) -> None:
    async def scenario() -> tuple[int, int]:
        first = await open_query(store, _feed())
        second = await open_query(store, _feed())
        opened = store.listener_count
        close_subscription(first)
        close_subscription(first)
        remaining = store.listener_count
        second.close()
        return opened, remaining

    assert asyncio.run(scenario()) == (2, 1)


def test_scenario_d_failure_keeps_last_good_snapshot(store) -> None:
    async def scenario():
        await store.mutate("posts", "p1", Set({"createdAt": 1}))
        errors: list[SubscriptionError] = []
        snapshots: list[Snapshot] = []
        handle = await open_query(store, _feed(), snapshots.append, errors.append)
        # A document without the order field makes the query unservable.
        await store.mutate("posts", "broken", Set({"content": "no timestamp"}))
        await store.mutate("posts", "p2", Set({"createdAt": 2}))
        return handle, snapshots, errors

    handle, snapshots, errors = asyncio.run(scenario())

    assert [snapshot.ids for snapshot in snapshots] == [["p1"]]
    assert len(errors) == 1
    assert errors[0].code == "failed-precondition"
    assert handle.state is SubscriptionState.FAILED
    assert handle.error is errors[0]
    assert handle.last_snapshot is not None and handle.last_snapshot.ids == ["p1"]
    assert store.listener_count == 0

    handle.close()
    assert handle.state is SubscriptionState.CLOSED
    assert handle.last_snapshot.ids == ["p1"]


def test_failure_on_open_is_reported_to_the_error_handler(store) -> None:
    async def scenario():
        await store.mutate("posts", "broken", Set({"content": "no timestamp"}))
        errors: list[SubscriptionError] = []
        handle = await open_query(store, _feed(), on_error=errors.append)
        return handle, errors

    handle, errors = asyncio.run(scenario())

    assert handle.state is SubscriptionState.FAILED
    assert handle.last_snapshot is None
    assert [error.code for error in errors] == ["failed-precondition"]


def test_stream_yields_latest_snapshot_then_updates(store) -> None:
    async def scenario() -> list[list[str]]:
        await store.mutate("posts", "p1", Set({"createdAt": 1}))
        handle = await open_query(store, _feed())
        seen: list[list[str]] = []

        async def consume() -> None:
            async for snapshot in handle.stream():
                seen.append(snapshot.ids)
                if len(seen) == 2:
                    handle.close()

        consumer = asyncio.create_task(consume())
        await asyncio.sleep(0)
        await store.mutate("posts", "p2", Merge({"createdAt": 2}))
        await asyncio.wait_for(consumer, timeout=5)
        return seen

    assert asyncio.run(scenario()) == [["p1"], ["p2", "p1"]]


def test_stream_raises_subscription_error_after_failure(store) -> None:
    async def scenario() -> str:
        await store.mutate("posts", "p1", Set({"createdAt": 1}))
        handle = await open_query(store, _feed())
        await store.mutate("posts", "broken", Set({"content": "x"}))
        try:
            async for _snapshot in handle.stream():
                pass
        except SubscriptionError as exc:
            return exc.code
        return "no error"

    assert asyncio.run(scenario()) == "failed-precondition"

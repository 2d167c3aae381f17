"""
Tests for the Room Registry

Tests for room creation/deletion, the one-room-per-connection rule and
the lookups used for message routing.
"""

import threading

import pytest

from relay import Departure, RoomRegistry


@pytest.fixture
def conn_a():
    return object()


@pytest.fixture
def conn_b():
    return object()


# ----------------------------------------------------------------------------
# join()
# ----------------------------------------------------------------------------


def test_registry_starts_empty(registry):
    """Test that a new registry has no rooms."""
    assert registry.room_count() == 0
    assert registry.members("room") == []


def test_first_join_creates_room(registry, conn_a):
    """Test that joining an unknown room creates it."""
    departure = registry.join("room1", conn_a, "alice")

    assert departure is None
    assert registry.has_room("room1")
    assert registry.room_count() == 1
    assert registry.room_of(conn_a) == "room1"
    assert registry.display_name_of(conn_a) == "alice"


def test_second_join_adds_member(registry, conn_a, conn_b):
    """Test that a second connection joins the existing room."""
    registry.join("room1", conn_a, "alice")
    registry.join("room1", conn_b, "bob")

    assert registry.room_count() == 1
    assert set(registry.members("room1")) == {conn_a, conn_b}
    assert sorted(registry.member_names("room1")) == ["alice", "bob"]


def test_duplicate_display_names_allowed(registry, conn_a, conn_b):
    """Test that two members can share a display name."""
    registry.join("room1", conn_a, "alice")
    registry.join("room1", conn_b, "alice")

    assert registry.member_names("room1") == ["alice", "alice"]


def test_join_other_room_moves_connection(registry, conn_a):
    """Test that a connection is never in two rooms at once."""
    registry.join("roomA", conn_a, "alice")
    departure = registry.join("roomB", conn_a, "alice")

    assert departure == Departure(
        room_id="roomA", username="alice", remaining=0, room_deleted=True
    )
    assert registry.room_of(conn_a) == "roomB"
    assert conn_a not in registry.members("roomA")
    assert not registry.has_room("roomA")
    assert registry.room_count() == 1


def test_join_other_room_keeps_old_room_if_occupied(
    registry, conn_a, conn_b
):
    """Test that the old room survives while it still has members."""
    registry.join("roomA", conn_a, "alice")
    registry.join("roomA", conn_b, "bob")

    departure = registry.join("roomB", conn_a, "alice")

    assert departure.room_id == "roomA"
    assert departure.remaining == 1
    assert departure.room_deleted is False
    assert registry.members("roomA") == [conn_b]
    assert registry.room_count() == 2


def test_rejoin_same_room_reports_departure(registry, conn_a):
    """Test that re-joining the same room still leaves it first."""
    registry.join("room1", conn_a, "alice")
    departure = registry.join("room1", conn_a, "alicia")

    assert departure.room_id == "room1"
    assert departure.username == "alice"
    assert registry.display_name_of(conn_a) == "alicia"
    assert registry.members("room1") == [conn_a]


# ----------------------------------------------------------------------------
# leave()
# ----------------------------------------------------------------------------


def test_sole_member_leaving_deletes_room(registry, conn_a):
    """Test that a room is removed when its last member leaves."""
    registry.join("room1", conn_a, "alice")
    departure = registry.leave(conn_a)

    assert departure.room_deleted is True
    assert departure.username == "alice"
    assert not registry.has_room("room1")
    assert registry.room_count() == 0
    assert registry.room_of(conn_a) is None
    assert registry.display_name_of(conn_a) is None


def test_leave_keeps_room_with_members(registry, conn_a, conn_b):
    """Test that leaving does not delete a room that still has members."""
    registry.join("room1", conn_a, "alice")
    registry.join("room1", conn_b, "bob")

    departure = registry.leave(conn_b)

    assert departure == Departure(
        room_id="room1", username="bob", remaining=1, room_deleted=False
    )
    assert registry.members("room1") == [conn_a]


def test_leave_without_membership_is_noop(registry, conn_a):
    """Test that leaving when in no room does nothing."""
    assert registry.leave(conn_a) is None
    assert registry.room_count() == 0


def test_leave_twice_is_noop(registry, conn_a):
    """Test that a second leave is harmless."""
    registry.join("room1", conn_a, "alice")
    registry.leave(conn_a)

    assert registry.leave(conn_a) is None


# ----------------------------------------------------------------------------
# Snapshots and concurrency
# ----------------------------------------------------------------------------


def test_members_returns_snapshot(registry, conn_a, conn_b):
    """Test that later membership changes do not alter a snapshot."""
    registry.join("room1", conn_a, "alice")
    snapshot = registry.members("room1")

    registry.join("room1", conn_b, "bob")
    registry.leave(conn_a)

    assert snapshot == [conn_a]


def test_concurrent_joins_and_leaves_keep_index_consistent():
    """Test that both maps agree after joins/leaves from many threads."""
    registry = RoomRegistry()
    connections = [object() for _ in range(50)]

    def churn(conn, index):
        for i in range(200):
            registry.join(f"room{(index + i) % 5}", conn, f"user{index}")
            if i % 3 == 0:
                registry.leave(conn)

    threads = [
        threading.Thread(target=churn, args=(conn, index))
        for index, conn in enumerate(connections)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    seen = []
    for room_number in range(5):
        members = registry.members(f"room{room_number}")
        seen.extend(members)
        for conn in members:
            assert registry.room_of(conn) == f"room{room_number}"

    assert len(seen) == len(set(seen))
    for conn in connections:
        if conn not in seen:
            assert registry.room_of(conn) is None
    for room_number in range(5):
        if registry.has_room(f"room{room_number}"):
            assert registry.members(f"room{room_number}")

"""
Tests for the Connection Session Handler

Tests for join/message handling, error replies, disconnect cleanup and
the end-to-end chat scenarios between several sessions.
"""

import json

import pytest

from relay import SessionState, identify


def join_frame(username, chatname="lobby", password="secret"):
    return json.dumps(
        {
            "type": "join",
            "username": username,
            "chatname": chatname,
            "password": password,
        }
    )


def message_frame(content):
    return json.dumps({"type": "message", "content": content})


LOBBY = identify("lobby", "secret")


# ----------------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_message_before_join(make_session, dispatcher, registry):
    """Test that messaging before joining yields one error and no broadcast."""
    ws, session = make_session()

    await session.handle_message(message_frame("hi"))
    await dispatcher.flush()

    assert ws.events() == [
        {
            "type": "error",
            "message": "You must join a room before sending messages",
        }
    ]
    assert session.state is SessionState.UNJOINED
    assert registry.room_count() == 0


@pytest.mark.asyncio
async def test_blank_message_after_join(make_session, dispatcher):
    """Test that whitespace-only content yields one error, no broadcast."""
    ws1, alice = make_session("alice")
    ws2, bob = make_session("bob")
    await alice.handle_message(join_frame("Alice"))
    await bob.handle_message(join_frame("Bob"))
    await dispatcher.flush()
    ws1.clear()
    ws2.clear()

    await alice.handle_message(message_frame("   "))
    await dispatcher.flush()

    assert ws1.events() == [
        {"type": "error", "message": "Message content cannot be empty"}
    ]
    assert ws2.sent_messages == []


@pytest.mark.asyncio
async def test_blank_message_before_join_reports_content(
    make_session, dispatcher
):
    """Test that content is validated before room membership."""
    ws, session = make_session()

    await session.handle_message(message_frame(""))
    await dispatcher.flush()

    assert ws.events() == [
        {"type": "error", "message": "Message content cannot be empty"}
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "frame",
    [
        json.dumps({"type": "join", "username": "Alice", "chatname": "lobby"}),
        json.dumps(
            {
                "type": "join",
                "username": "",
                "chatname": "lobby",
                "password": "secret",
            }
        ),
    ],
)
async def test_join_missing_fields(make_session, dispatcher, registry, frame):
    """Test that an incomplete join is rejected without a state change."""
    ws, session = make_session()

    await session.handle_message(frame)
    await dispatcher.flush()

    assert ws.events() == [
        {
            "type": "error",
            "message": "Username, chatname, and password are required",
        }
    ]
    assert session.state is SessionState.UNJOINED
    assert registry.room_count() == 0


@pytest.mark.asyncio
async def test_invalid_join_keeps_current_room(
    make_session, dispatcher, registry
):
    """Test that a rejected re-join leaves the session where it was."""
    ws, session = make_session()
    await session.handle_message(join_frame("Alice"))

    await session.handle_message(json.dumps({"type": "join"}))
    await dispatcher.flush()

    assert session.state is SessionState.JOINED
    assert registry.room_of(ws) == LOBBY
    assert ws.events()[-1]["type"] == "error"


@pytest.mark.asyncio
async def test_malformed_frame(make_session, dispatcher):
    """Test that unparseable input gets the generic format error."""
    ws, session = make_session()

    await session.handle_message("this is not json")
    await dispatcher.flush()

    assert ws.events() == [
        {"type": "error", "message": "Invalid message format"}
    ]
    assert session.state is SessionState.UNJOINED


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "frame",
    [
        pytest.param(
            '{"type": "message", "content": ' + "9" * 5000 + "}",
            id="huge-integer",
        ),
        pytest.param("[" * 100000 + "]" * 100000, id="deep-nesting"),
    ],
)
async def test_undecodable_frame_keeps_membership(
    make_session, dispatcher, registry, frame
):
    """Test that a frame json cannot decode is an error, not a disconnect."""
    ws_alice, alice = make_session("alice")
    ws_bob, bob = make_session("bob")
    await alice.handle_message(join_frame("Alice"))
    await bob.handle_message(join_frame("Bob"))
    await dispatcher.flush()
    ws_alice.clear()
    ws_bob.clear()

    await alice.handle_message(frame)
    await dispatcher.flush()

    assert ws_alice.events() == [
        {"type": "error", "message": "Invalid message format"}
    ]
    assert ws_bob.sent_messages == []
    assert alice.state is SessionState.JOINED
    assert len(registry.members(LOBBY)) == 2


@pytest.mark.asyncio
async def test_unknown_type_is_ignored(make_session, dispatcher, caplog):
    """Test that unknown event types get no reply but are logged."""
    ws, session = make_session()

    with caplog.at_level("WARNING"):
        await session.handle_message(json.dumps({"type": "typing"}))
    await dispatcher.flush()

    assert ws.sent_messages == []
    assert "Unknown message type: typing" in caplog.text


# ----------------------------------------------------------------------------
# Join / leave / close
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_rejoin_other_room_notifies_both_rooms(
    make_session, dispatcher, registry
):
    """Test that switching rooms announces a leave, then a join."""
    ws_alice, alice = make_session("alice")
    ws_bob, bob = make_session("bob")
    ws_carol, carol = make_session("carol")
    await alice.handle_message(join_frame("Alice"))
    await bob.handle_message(join_frame("Bob"))
    await carol.handle_message(join_frame("Carol", chatname="kitchen"))
    await dispatcher.flush()
    for ws in (ws_alice, ws_bob, ws_carol):
        ws.clear()

    await alice.handle_message(join_frame("Alice", chatname="kitchen"))
    await dispatcher.flush()

    assert ws_bob.events() == [{"type": "leave", "username": "Alice"}]
    assert ws_carol.events() == [{"type": "join", "username": "Alice"}]
    assert ws_alice.events() == [{"type": "join", "username": "Alice"}]
    assert registry.room_of(ws_alice) == identify("kitchen", "secret")
    assert ws_alice not in registry.members(LOBBY)


@pytest.mark.asyncio
async def test_rejoin_same_room_announces_leave_then_join(
    make_session, dispatcher
):
    """Test that re-joining the current room is a leave followed by a join."""
    ws_alice, alice = make_session("alice")
    ws_bob, bob = make_session("bob")
    await alice.handle_message(join_frame("Alice"))
    await bob.handle_message(join_frame("Bob"))
    await dispatcher.flush()
    ws_alice.clear()
    ws_bob.clear()

    await alice.handle_message(join_frame("Ally"))
    await dispatcher.flush()

    assert ws_bob.events() == [
        {"type": "leave", "username": "Alice"},
        {"type": "join", "username": "Ally"},
    ]
    assert ws_alice.events() == [{"type": "join", "username": "Ally"}]


@pytest.mark.asyncio
async def test_close_without_join(make_session, dispatcher, registry):
    """Test that closing a session that never joined is safe."""
    ws, session = make_session()

    session.close()
    session.close()
    await dispatcher.flush()

    assert session.state is SessionState.CLOSED
    assert ws.sent_messages == []
    assert registry.room_count() == 0


@pytest.mark.asyncio
async def test_frames_after_close_are_ignored(make_session, dispatcher):
    """Test that a closed session does not react to late frames."""
    ws, session = make_session()
    session.close()

    await session.handle_message(message_frame("hi"))
    await dispatcher.flush()

    assert ws.sent_messages == []


@pytest.mark.asyncio
async def test_message_to_other_room_is_not_delivered(
    make_session, dispatcher
):
    """Test that broadcasts stay inside their room."""
    ws_alice, alice = make_session("alice")
    ws_carol, carol = make_session("carol")
    await alice.handle_message(join_frame("Alice"))
    await carol.handle_message(join_frame("Carol", password="different"))
    await dispatcher.flush()
    ws_carol.clear()

    await alice.handle_message(message_frame("hi"))
    await dispatcher.flush()

    assert ws_carol.sent_messages == []


# ----------------------------------------------------------------------------
# Chat scenario
# ----------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_lobby_conversation(make_session, dispatcher, registry):
    """Test the full join / chat / disconnect flow between two clients."""
    c1, alice = make_session("c1")
    c2, bob = make_session("c2")

    # Alice joins an empty room: only her ack
    await alice.handle_message(join_frame("Alice"))
    await dispatcher.flush()
    assert c1.events() == [{"type": "join", "username": "Alice"}]
    assert alice.state is SessionState.JOINED
    c1.clear()

    # Bob joins: notice to Alice, ack to Bob
    await bob.handle_message(join_frame("Bob"))
    await dispatcher.flush()
    assert c1.events() == [{"type": "join", "username": "Bob"}]
    assert c2.events() == [{"type": "join", "username": "Bob"}]
    assert len(registry.members(LOBBY)) == 2
    c1.clear()
    c2.clear()

    # Alice says hi: both receive it, sender included
    await alice.handle_message(message_frame("hi"))
    await dispatcher.flush()
    expected = {"type": "message", "username": "Alice", "content": "hi"}
    assert c1.events() == [expected]
    assert c2.events() == [expected]
    c1.clear()
    c2.clear()

    # Bob disconnects: Alice is told, the room survives
    rooms_before = registry.room_count()
    bob.close()
    await dispatcher.flush()
    assert c1.events() == [{"type": "leave", "username": "Bob"}]
    assert c2.sent_messages == []
    assert registry.members(LOBBY) == [c1]
    assert registry.has_room(LOBBY)
    assert bob.state is SessionState.CLOSED

    # Alice disconnects: the room is removed
    alice.close()
    await dispatcher.flush()
    assert not registry.has_room(LOBBY)
    assert registry.room_count() == rooms_before - 1

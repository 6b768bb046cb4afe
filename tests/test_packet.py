import struct

import pytest

from confchat.packet import (
    DATA_SIZE,
    NAME_SIZE,
    WIRE_SIZE,
    Command,
    Message,
    PacketError,
    PacketType,
    format_packet,
    make_invite,
    make_invite_ack,
    make_invite_nak,
    make_join,
    make_join_ack,
    make_join_nak,
    make_leave,
    make_leave_ack,
    make_leave_nak,
    make_login,
    make_login_ack,
    make_login_nak,
    make_logout,
    make_logout_ack,
    make_logout_nak,
    make_message,
    make_new_session,
    make_new_session_ack,
    make_new_session_nak,
    make_query,
    make_query_ack,
    make_quit,
    parse_command,
)


@pytest.mark.parametrize(
    "msg, number",
    [
        (make_login("alice", "password"), 0),
        (make_message("alice", "hi"), 10),
        (make_logout("alice"), 18),
        (make_invite_nak("alice", "no"), 21),
    ],
)
def test_packet_type_numbers_follow_protocol(msg, number):
    raw = msg.encode()
    assert struct.unpack("<I", raw[:4])[0] == number
    assert Message.decode(raw).type == number


@pytest.mark.parametrize(
    "word, expected",
    [
        ("login", Command.LOGIN),
        ("logout", Command.LOGOUT),
        ("joinsession", Command.JOINSESSION),
        ("leavesession", Command.LEAVESESSION),
        ("createsession", Command.CREATESESSION),
        ("list", Command.LIST),
        ("quit", Command.QUIT),
        ("invite", Command.INVITE),
    ],
)
def test_parse_known_commands(word, expected):
    assert parse_command(word) is expected


@pytest.mark.parametrize("word", ["", "LOGIN", "hello", "join"])
def test_parse_unknown_commands(word):
    assert parse_command(word) is None


def test_wire_size_holds_all_fields():
    assert WIRE_SIZE >= 8 + NAME_SIZE + DATA_SIZE
    assert WIRE_SIZE % 4 == 0
    assert len(make_query("alice").encode()) == WIRE_SIZE


def test_login_packet_contents():
    password = "password"
    msg = make_login("alice", password)
    assert msg.type is PacketType.LOGIN
    assert msg.text() == "alice,password"
    assert msg.size == len("alice,password")
    assert msg.sender() == "alice"


def test_encode_header_layout():
    msg = make_join("bob", "ECE361")
    raw = msg.encode()
    assert raw[:8] == struct.pack("<II", PacketType.JOIN, len("ECE361"))
    assert raw[8 : 8 + 3] == b"bob"
    assert raw[8 + NAME_SIZE : 8 + NAME_SIZE + 6] == b"ECE361"


@pytest.mark.parametrize(
    "msg",
    [
        make_logout("alice"),
        make_join("alice", "JRE420"),
        make_leave("alice", "JRE420"),
        make_new_session("alice", "ECE334"),
        make_invite("alice", "Emily", "ECE361"),
        make_message("alice", "hello there\n"),
        make_quit("alice"),
        make_logout_nak("alice", "You're not even logged in"),
    ],
)
def test_round_trip(msg):
    assert Message.decode(msg.encode()) == msg


def test_decode_rejects_wrong_length():
    with pytest.raises(PacketError):
        Message.decode(b"\0" * (WIRE_SIZE - 1))


def test_decode_keeps_unknown_type_as_int():
    raw = struct.pack("<II", 99, 0) + b"\0" * (WIRE_SIZE - 8)
    msg = Message.decode(raw)
    assert msg.type == 99
    assert not isinstance(msg.type, PacketType)


def test_source_too_long_rejected():
    with pytest.raises(PacketError):
        make_query("x" * (NAME_SIZE + 1))


def test_data_too_long_rejected():
    with pytest.raises(PacketError):
        make_message("alice", "y" * (DATA_SIZE + 1))


def test_invite_data_is_invitee_then_session():
    assert make_invite("alice", "Emily", "ECE361").text() == "Emily,ECE361"
    ack = make_invite_ack("alice", "ECE361", "Emily")
    assert ack.type is PacketType.INVITE_ACK
    assert ack.text() == "Emily,ECE361"
    assert ack.sender() == "alice"


def test_join_nak_combines_session_and_reason():
    msg = make_join_nak("alice", "ECE361", "nope")
    assert msg.type is PacketType.JN_NAK
    assert msg.text() == "ECE361,nope"
    assert msg.size == len(msg.text())


@pytest.mark.parametrize(
    "factory, ptype",
    [
        (make_login_ack, PacketType.LO_ACK),
        (make_logout_ack, PacketType.EXIT_ACK),
        (make_logout, PacketType.CLIENT_LOGOUT),
        (make_query, PacketType.QUERY),
    ],
)
def test_empty_packets(factory, ptype):
    msg = factory("alice")
    assert msg.type is ptype
    assert msg.size == 0
    assert msg.text() == ""


@pytest.mark.parametrize(
    "factory, ptype",
    [
        (make_login_nak, PacketType.LO_NAK),
        (make_invite_nak, PacketType.INVITE_NAK),
        (make_new_session_nak, PacketType.NS_NAK),
        (make_join_ack, PacketType.JN_ACK),
        (make_new_session_ack, PacketType.NS_ACK),
        (make_leave_ack, PacketType.LEAVE_ACK),
        (make_leave_nak, PacketType.LEAVE_NAK),
    ],
)
def test_reason_and_session_packets(factory, ptype):
    msg = factory("alice", "This session already exists.\n")
    assert msg.type is ptype
    assert msg.text() == "This session already exists.\n"
    assert msg.size == len(msg.data)


def test_quit_and_logout_nak_sizes():
    quit_msg = make_quit("alice")
    assert quit_msg.type is PacketType.EXIT_SERVER
    assert quit_msg.text() == "Quit"
    assert quit_msg.size == len("Quit")
    nak = make_logout_nak("alice", "whatever reason")
    assert nak.size == len("Logout")
    assert nak.text() == "whatever reason"


def test_query_ack_listing():
    msg = make_query_ack("alice", ["alice", "bob"], ["ECE361"])
    assert msg.type is PacketType.QU_ACK
    assert msg.text() == "User: alice\tbob\t\nSession: ECE361\t"
    assert msg.size == len(msg.text())


def test_query_ack_empty_lists():
    msg = make_query_ack("alice", [], [])
    assert msg.text() == "User: Empty!\nSession: Empty!"


def test_query_ack_truncates_payload_but_not_size():
    users = [f"user{n:03d}" for n in range(200)]
    msg = make_query_ack("alice", users, [])
    assert len(msg.data) == DATA_SIZE
    assert msg.size > DATA_SIZE
    assert msg.text().startswith("User: user000\t")


def test_format_packet_lists_fields():
    out = format_packet(make_join("bob", "ECE361"))
    lines = out.splitlines()
    assert lines[1] == f"type : {int(PacketType.JOIN)}"
    assert lines[2] == "size : 6"
    assert lines[3] == "source : bob"
    assert lines[4] == "data : ECE361"
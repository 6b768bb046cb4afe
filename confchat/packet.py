"""Wire packets exchanged between the conference server and its clients."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Optional, Union

NAME_SIZE = 50
DATA_SIZE = 1000

_LAYOUT = struct.Struct(f"<II{NAME_SIZE}s{DATA_SIZE}s2x")
WIRE_SIZE = _LAYOUT.size


class PacketError(ValueError):
    """Raised when a packet cannot be built or decoded."""


class PacketType(IntEnum):
    LOGIN = 0
    LO_ACK = 1
    LO_NAK = 2
    EXIT_SERVER = 3
    JOIN = 4
    JN_ACK = 5
    JN_NAK = 6
    LEAVE_SESS = 7
    NEW_SESS = 8
    NS_ACK = 9
    MESSAGE = 10
    QUERY = 11
    QU_ACK = 12
    LEAVE_ACK = 13
    NS_NAK = 14
    LEAVE_NAK = 15
    EXIT_ACK = 16
    EXIT_NAK = 17
    CLIENT_LOGOUT = 18
    INVITATION = 19
    INVITE_ACK = 20
    INVITE_NAK = 21


class Command(IntEnum):
    LOGIN = 0
    LOGOUT = 1
    JOINSESSION = 2
    LEAVESESSION = 3
    CREATESESSION = 4
    LIST = 5
    QUIT = 6
    INVITE = 7


def parse_command(word: str) -> Optional[Command]:
    """Map a command word such as ``"login"`` to a Command, or None if unknown."""
    try:
        return Command[word.upper()] if word == word.lower() else None
    except KeyError:
        return None


def _to_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


@dataclass(frozen=True)
class Message:
    """One fixed-size packet: type, size, source name and data payload."""

    type: Union[PacketType, int]
    size: int
    source: bytes = b""
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", _to_bytes(self.source))
        object.__setattr__(self, "data", _to_bytes(self.data))
        if len(self.source) > NAME_SIZE:
            raise PacketError(f"source longer than {NAME_SIZE} bytes")
        if len(self.data) > DATA_SIZE:
            raise PacketError(f"data longer than {DATA_SIZE} bytes")
        if not 0 <= self.type <= 0xFFFFFFFF or not 0 <= self.size <= 0xFFFFFFFF:
            raise PacketError("type and size must fit in 32 unsigned bits")
        try:
            object.__setattr__(self, "type", PacketType(self.type))
        except ValueError:
            pass

    def encode(self) -> bytes:
        """Serialise to the fixed-size wire form."""
        return _LAYOUT.pack(int(self.type), self.size, self.source, self.data)

    @classmethod
    def decode(cls, raw: bytes) -> "Message":
        """Build a message from exactly WIRE_SIZE bytes."""
        if len(raw) != WIRE_SIZE:
            raise PacketError(f"expected {WIRE_SIZE} bytes, got {len(raw)}")
        ptype, size, source, data = _LAYOUT.unpack(raw)
        return cls(
            type=ptype,
            size=size,
            source=source.split(b"\0", 1)[0],
            data=data.split(b"\0", 1)[0],
        )

    def text(self) -> str:
        """The data payload as text, up to the first NUL."""
        return self.data.split(b"\0", 1)[0].decode("utf-8", errors="replace")

    def sender(self) -> str:
        """The source name as text, up to the first NUL."""
        return self.source.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _payload(ptype: PacketType, client_id: str, data: str = "") -> Message:
    body = _to_bytes(data)
    return Message(ptype, len(body), _to_bytes(client_id), body)


def _empty(ptype: PacketType, client_id: str) -> Message:
    return Message(ptype, 0, _to_bytes(client_id), b"")


def make_login(client_id: str, password: str) -> Message:
    return _payload(PacketType.LOGIN, client_id, f"{client_id},{password}")


def make_logout(client_id: str) -> Message:
    return _empty(PacketType.CLIENT_LOGOUT, client_id)


def make_join(client_id: str, session_id: str) -> Message:
    return _payload(PacketType.JOIN, client_id, session_id)


def make_leave(client_id: str, session_id: str) -> Message:
    return _payload(PacketType.LEAVE_SESS, client_id, session_id)


def make_new_session(client_id: str, session_id: str) -> Message:
    return _payload(PacketType.NEW_SESS, client_id, session_id)


def make_invite(client_id: str, invitee: str, session_id: str) -> Message:
    return _payload(PacketType.INVITATION, client_id, f"{invitee},{session_id}")


def make_invite_ack(client_id: str, session_id: str, invitee: str) -> Message:
    return _payload(PacketType.INVITE_ACK, client_id, f"{invitee},{session_id}")


def make_invite_nak(client_id: str, reason: str) -> Message:
    return _payload(PacketType.INVITE_NAK, client_id, reason)


def make_login_ack(client_id: str) -> Message:
    return _empty(PacketType.LO_ACK, client_id)


def make_login_nak(client_id: str, reason: str) -> Message:
    return _payload(PacketType.LO_NAK, client_id, reason)


def make_join_ack(client_id: str, session_id: str) -> Message:
    return _payload(PacketType.JN_ACK, client_id, session_id)


def make_join_nak(client_id: str, session_id: str, reason: str) -> Message:
    return _payload(PacketType.JN_NAK, client_id, f"{session_id},{reason}")


def make_new_session_ack(client_id: str, session_id: str) -> Message:
    return _payload(PacketType.NS_ACK, client_id, session_id)


def make_new_session_nak(client_id: str, reason: str) -> Message:
    return _payload(PacketType.NS_NAK, client_id, reason)


def make_leave_ack(client_id: str, session_id: str) -> Message:
    return _payload(PacketType.LEAVE_ACK, client_id, session_id)


def make_leave_nak(client_id: str, session_id: str) -> Message:
    return _payload(PacketType.LEAVE_NAK, client_id, session_id)


def make_message(client_id: str, text: str) -> Message:
    return _payload(PacketType.MESSAGE, client_id, text)


def make_query(client_id: str) -> Message:
    return _empty(PacketType.QUERY, client_id)


def make_query_ack(client_id: str, users: Iterable[str], sessions: Iterable[str]) -> Message:
    """List reply: users line, newline, sessions line; 'Empty!' for an empty list.

    The size field holds the full listing length; the payload is cut to fit.
    """
    users = list(users)
    sessions = list(sessions)
    user_part = "".join(f"{u}\t" for u in users) if users else "Empty!"
    sess_part = "".join(f"{s}\t" for s in sessions) if sessions else "Empty!"
    listing = f"User: {user_part}\nSession: {sess_part}".encode("utf-8")
    return Message(PacketType.QU_ACK, len(listing), _to_bytes(client_id), listing[:DATA_SIZE])


def make_logout_ack(client_id: str) -> Message:
    return _empty(PacketType.EXIT_ACK, client_id)


def make_logout_nak(client_id: str, reason: str) -> Message:
    return Message(PacketType.EXIT_NAK, len("Logout"), _to_bytes(client_id), _to_bytes(reason))


def make_quit(client_id: str) -> Message:
    return Message(PacketType.EXIT_SERVER, len("Quit"), _to_bytes(client_id), b"Quit")


def format_packet(message: Message) -> str:
    """Human-readable dump of a packet's fields."""
    return (
        "Print packet: \n"
        f"type : {int(message.type)}\n"
        f"size : {message.size}\n"
        f"source : {message.sender()}\n"
        f"data : {message.text()}"
    )
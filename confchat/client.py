"""Interactive conference client: reads slash commands and talks to the server."""

from __future__ import annotations

import socket
import sys
import threading
from typing import Callable, List, Optional

from .packet import (
    WIRE_SIZE,
    Command,
    Message,
    PacketError,
    PacketType,
    format_packet,
    make_invite,
    make_join,
    make_leave,
    make_login,
    make_logout,
    make_message,
    make_new_session,
    make_query,
    make_quit,
    parse_command,
)

_LOGIN_USAGE = "Usage: /login <client id> <password> <server ip> <server port>"


def describe_reply(message: Message) -> Optional[str]:
    """A one-line description of a server reply, or None for packets not shown."""
    text = message.text()
    ptype = message.type
    if ptype == PacketType.LO_ACK:
        return "LO_ACK: Successful login!"
    if ptype == PacketType.LO_NAK:
        return f"LO_NAK: Unsuccessful login, reason: {text}"
    if ptype == PacketType.JN_ACK:
        return "JN_ACK: Successfully join session"
    if ptype == PacketType.JN_NAK:
        return f"JN_NAK: Unsuccessful join session, reason: {text}"
    if ptype == PacketType.NS_ACK:
        return "NS_ACK: Successful new session"
    if ptype == PacketType.MESSAGE:
        return f"MESSAGE: The message sent to the session is: {text}"
    if ptype == PacketType.QU_ACK:
        return f"QU_ACK: Users and sessions: {text}"
    if ptype == PacketType.LEAVE_ACK:
        return "LEAVE_ACK: Successful leave session"
    if ptype == PacketType.NS_NAK:
        return f"NS_NAK: Unsuccessful create session, reasons: {text}"
    if ptype == PacketType.LEAVE_NAK:
        return f"LEAVE_NAK: Unsuccessful leave session, reason: {text}"
    if ptype == PacketType.EXIT_ACK:
        return "EXIT_ACK: Successful exit"
    if ptype == PacketType.EXIT_NAK:
        return f"EXIT_NAK: Unsuccessful exit, reason: {text}"
    if ptype == PacketType.INVITE_ACK:
        tokens = [t for t in text.split(",") if t]
        person = tokens[0] if tokens else ""
        session_id = tokens[-1] if tokens else ""
        return f"{message.sender()} invites {person} to join session: {session_id}"
    if ptype == PacketType.INVITE_NAK:
        return f"INVITE_NAK: Unsuccessful invite, reason: {text}"
    return None


def _recv_exact(conn: socket.socket, size: int) -> Optional[bytes]:
    """Read exactly ``size`` bytes, or return None if the peer closed first."""
    chunks = bytearray()
    while len(chunks) < size:
        chunk = conn.recv(size - len(chunks))
        if not chunk:
            return None
        chunks.extend(chunk)
    return bytes(chunks)


def _connect(host: str, port) -> socket.socket:
    try:
        infos = socket.getaddrinfo(
            host, str(port), socket.AF_INET, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
        )
    except socket.gaierror as exc:
        raise OSError("Structure setup failed!") from exc
    family, socktype, proto, _, address = infos[0]
    sock = socket.socket(family, socktype, proto)
    try:
        sock.connect(address)
    except OSError:
        sock.close()
        raise
    return sock


class ChatClient:
    """Client state: the connection, the logged-in name and whether a session is held."""

    def __init__(
        self,
        conn: Optional[socket.socket] = None,
        output: Callable[[str], object] = print,
    ) -> None:
        self._conn = conn
        self._out = output
        self.client_id = ""
        self.logged_in = False
        self.in_session = False
        self.quit = False
        self._first_login = True
        self._receiver: Optional[threading.Thread] = None
        self._send_lock = threading.Lock()

    def _send(self, packet: Message) -> None:
        if self._conn is None:
            raise ConnectionError("not connected to a server")
        self._out("Will send packet: ")
        self._out(format_packet(packet))
        with self._send_lock:
            self._conn.sendall(packet.encode())
        self._out("Client sent successfully!")

    def login(self, client_id: str, password: str, host: str, port) -> Optional[Message]:
        """Log in; the first login connects and returns the server's reply.

        Later logins are sent on the same connection and their reply is left
        to the receiving thread, so None is returned for them.
        """
        packet = make_login(client_id, password)
        self.client_id = client_id
        if self._first_login:
            if self._conn is None:
                self._conn = _connect(host, port)
            self.logged_in = True
        if not self.logged_in:
            return None
        self._send(packet)
        if not self._first_login:
            return None
        self._first_login = False
        return self._await_login_reply()

    def _await_login_reply(self) -> Message:
        raw = _recv_exact(self._conn, WIRE_SIZE)
        if raw is None:
            raise ConnectionError("server closed the connection")
        reply = Message.decode(raw)
        self._out(format_packet(reply))
        if reply.type == PacketType.LO_ACK:
            self._receiver = threading.Thread(target=self.receive_loop, daemon=True)
            self._receiver.start()
            self._out(describe_reply(reply))
        elif reply.type == PacketType.LO_NAK:
            self._out(describe_reply(reply))
        else:
            self._out("Random message received!")
        return reply

    def receive_loop(self) -> None:
        """Show every packet from the server until the connection closes."""
        conn = self._conn
        if conn is None:
            return
        while True:
            try:
                raw = _recv_exact(conn, WIRE_SIZE)
            except OSError:
                return
            if raw is None:
                return
            try:
                reply = Message.decode(raw)
            except PacketError:
                continue
            self._out(format_packet(reply))
            if reply.type in (PacketType.JN_ACK, PacketType.NS_ACK):
                self.in_session = True
            elif reply.type == PacketType.EXIT_ACK:
                self.in_session = False
            text = describe_reply(reply)
            if text is not None:
                self._out(text)

    def handle_line(self, line: str) -> Optional[Message]:
        """Act on one input line; return the packet sent, or None if nothing was sent."""
        tokens = line.split()
        word = tokens[0][1:] if tokens and tokens[0].startswith("/") else ""
        command = parse_command(word) if word else None
        args = tokens[1:]
        try:
            if command is None:
                return self._send_text(line)
            if command is Command.LOGIN:
                if len(args) < 4:
                    self._out(_LOGIN_USAGE)
                    return None
                client_id, password, host, port = args[:4]
                self.login(client_id, password, host, port)
                return make_login(client_id, password) if self.logged_in else None
            packet = self._build(command, args)
        except PacketError as exc:
            self._out(f"Bad packet: {exc}")
            return None
        if not self.logged_in:
            return None
        self._send(packet)
        return packet

    def _build(self, command: Command, args: List[str]) -> Message:
        first = args[0] if args else ""
        if command is Command.LOGOUT:
            return make_logout(self.client_id)
        if command is Command.JOINSESSION:
            return make_join(self.client_id, first)
        if command is Command.LEAVESESSION:
            return make_leave(self.client_id, first)
        if command is Command.CREATESESSION:
            return make_new_session(self.client_id, first)
        if command is Command.LIST:
            return make_query(self.client_id)
        if command is Command.QUIT:
            self.quit = True
            self._out("------Quitting--------")
            return make_quit(self.client_id)
        second = args[1] if len(args) > 1 else ""
        self._out(f"person to invite: {first}")
        self._out(f"session to invite: {second}")
        return make_invite(self.client_id, first, second)

    def _send_text(self, line: str) -> Optional[Message]:
        if not self.in_session or self._conn is None:
            self._out("Not in session/logged in, can't send message!")
            return None
        self._out(f"Input: {line}")
        packet = make_message(self.client_id, line)
        self._send(packet)
        return packet

    def close(self) -> None:
        """Close the connection and wait for the receiving thread to finish."""
        conn, self._conn = self._conn, None
        if conn is not None:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            conn.close()
        receiver, self._receiver = self._receiver, None
        if receiver is not None and receiver is not threading.current_thread():
            receiver.join(timeout=2)


def main(argv=None) -> int:
    """Run the client: reads commands from standard input."""
    args = list(sys.argv[1:] if argv is None else argv)
    if args:
        print("Error: the number of inputs is incorrect!\n Expecting client")
        return 1
    client = ChatClient()
    try:
        for line in sys.stdin:
            client.handle_line(line)
            if client.quit:
                break
    except OSError as exc:
        print(exc)
        return 1
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
"""Conference server: accepts clients and acts on their packets."""

from __future__ import annotations

import logging
import socket
import sys
import threading
from typing import Dict, List, Optional, Tuple

from .packet import (
    WIRE_SIZE,
    Message,
    PacketError,
    PacketType,
    make_invite_ack,
    make_invite_nak,
    make_join_ack,
    make_join_nak,
    make_leave_ack,
    make_leave_nak,
    make_login_ack,
    make_login_nak,
    make_logout_ack,
    make_logout_nak,
    make_message,
    make_new_session_ack,
    make_new_session_nak,
    make_query_ack,
)
from .registry import Registry, RegistryError, User

BACKLOG = 20

log = logging.getLogger(__name__)


def _recv_exact(conn: socket.socket, size: int) -> Optional[bytes]:
    """Read exactly ``size`` bytes, or return None if the peer closed first."""
    chunks = bytearray()
    while len(chunks) < size:
        chunk = conn.recv(size - len(chunks))
        if not chunk:
            return None
        chunks.extend(chunk)
    return bytes(chunks)


class ChatServer:
    """Holds the registry and the open connections, and answers packets."""

    def __init__(self, registry: Optional[Registry] = None) -> None:
        self.registry = registry if registry is not None else Registry()
        self._connections: Dict[int, Tuple[socket.socket, threading.Lock]] = {}
        self._conn_lock = threading.Lock()

    def _send(self, fd: int, message: Message) -> None:
        """Write a packet to a connection; unknown or broken connections are skipped."""
        with self._conn_lock:
            entry = self._connections.get(fd)
        if entry is None:
            return
        conn, lock = entry
        try:
            with lock:
                conn.sendall(message.encode())
        except OSError as exc:
            log.debug("send to %d failed: %s", fd, exc)

    def process(self, packet: Message, user: User) -> Optional[Message]:
        """Act on one packet from ``user``; return the reply for that user, if any."""
        handlers = {
            PacketType.LOGIN: self._login,
            PacketType.EXIT_SERVER: self._quit,
            PacketType.CLIENT_LOGOUT: self._logout,
            PacketType.JOIN: self._join,
            PacketType.LEAVE_SESS: self._leave,
            PacketType.NEW_SESS: self._new_session,
            PacketType.MESSAGE: self._message,
            PacketType.QUERY: self._query,
            PacketType.INVITATION: self._invite,
        }
        handler = handlers.get(packet.type)
        if handler is None:
            log.debug("ignoring packet of type %s", int(packet.type))
            return None
        reply = handler(packet, user)
        log.debug("user after packet:\n%s", self.registry.describe())
        return reply

    def _login(self, packet: Message, user: User) -> Message:
        if user.logged_in:
            return make_login_nak(user.client_id, "This user is already logged in")
        previous = user.client_id
        user.client_id = packet.sender()
        try:
            self.registry.login(user)
        except RegistryError as exc:
            user.client_id = previous
            return make_login_nak(user.client_id, str(exc))
        user.quit = False
        tokens = [t for t in packet.text().split(",") if t]
        user.password = tokens[-1] if tokens else ""
        return make_login_ack(user.client_id)

    def _quit(self, packet: Message, user: User) -> None:
        try:
            self.registry.logout(user)
        except RegistryError:
            pass
        user.quit = True
        return None

    def _logout(self, packet: Message, user: User) -> Message:
        self.registry.leave_all_sessions(user)
        try:
            self.registry.logout(user)
        except RegistryError as exc:
            user.logged_in = False
            return make_logout_nak(user.client_id, str(exc))
        return make_logout_ack(user.client_id)

    def _join(self, packet: Message, user: User) -> Message:
        session_id = packet.text()
        try:
            self.registry.join_session(session_id, user)
        except RegistryError as exc:
            return make_join_nak(user.client_id, session_id, str(exc))
        return make_join_ack(user.client_id, session_id)

    def _leave(self, packet: Message, user: User) -> Message:
        session_id = packet.text()
        try:
            self.registry.leave_session(session_id, user)
        except RegistryError:
            return make_leave_nak(user.client_id, session_id)
        return make_leave_ack(user.client_id, session_id)

    def _new_session(self, packet: Message, user: User) -> Message:
        session_id = packet.text()
        try:
            self.registry.create_session(session_id, user)
        except RegistryError as exc:
            return make_new_session_nak(user.client_id, str(exc))
        return make_new_session_ack(user.client_id, session_id)

    def _message(self, packet: Message, user: User) -> None:
        if not user.current_session:
            log.info("You're not in session")
            return None
        outgoing = make_message(user.client_id, packet.text())
        try:
            members: List[int] = self.registry.session_members(user.current_session)
        except RegistryError:
            return None
        for fd in members:
            self._send(fd, outgoing)
        return None

    def _query(self, packet: Message, user: User) -> Message:
        return make_query_ack(
            user.client_id,
            self.registry.user_ids(),
            self.registry.active_session_ids(),
        )

    def _invite(self, packet: Message, user: User) -> Message:
        tokens = [t for t in packet.text().split(",") if t]
        person = tokens[0] if tokens else ""
        session_id = tokens[-1] if tokens else ""
        try:
            invitee = self.registry.find_user(person)
        except RegistryError as exc:
            return make_invite_nak(user.client_id, str(exc))
        if not self.registry.session_exists(session_id):
            return make_invite_nak(user.client_id, "This session doesn't exist.\n")
        reply = make_invite_ack(user.client_id, session_id, person)
        self._send(invitee.fd, reply)
        return reply

    def handle_connection(self, conn: socket.socket) -> None:
        """Serve one client until it quits or disconnects."""
        user = User(fd=conn.fileno())
        with self._conn_lock:
            self._connections[user.fd] = (conn, threading.Lock())
        try:
            while not user.quit:
                try:
                    raw = _recv_exact(conn, WIRE_SIZE)
                except OSError:
                    break
                if raw is None:
                    break
                try:
                    packet = Message.decode(raw)
                except PacketError as exc:
                    log.warning("bad packet from %d: %s", user.fd, exc)
                    continue
                reply = self.process(packet, user)
                if reply is not None:
                    self._send(user.fd, reply)
        finally:
            if user.logged_in:
                self.registry.leave_all_sessions(user)
                try:
                    self.registry.logout(user)
                except RegistryError:
                    pass
            with self._conn_lock:
                self._connections.pop(user.fd, None)
            conn.close()

    def serve_forever(self, port) -> None:
        """Listen on ``port`` on all IPv4 addresses and serve each client in a thread."""
        try:
            infos = socket.getaddrinfo(
                None, str(port), socket.AF_INET, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
            )
        except socket.gaierror as exc:
            raise OSError("Structure setup failed!") from exc
        family, socktype, proto, _, address = infos[0]
        with socket.socket(family, socktype, proto) as listener:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind(address)
            listener.listen(BACKLOG)
            while True:
                conn, _ = listener.accept()
                threading.Thread(
                    target=self.handle_connection, args=(conn,), daemon=True
                ).start()


def main(argv=None) -> int:
    """Run the server: ``server <port>``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) != 1:
        print("Error: the number of inputs is incorrect!")
        return 1
    port = args[0]
    print(port)
    try:
        ChatServer().serve_forever(port)
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
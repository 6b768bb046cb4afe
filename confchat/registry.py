"""Bookkeeping of logged-in users and conference sessions."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import List, Optional

_VACANT = -1


class RegistryError(Exception):
    """Raised when a user or session operation is refused; the message says why."""


@dataclass(eq=False)
class User:
    """A connected client, identified on the server by its connection number."""

    fd: int
    client_id: str = ""
    password: str = ""
    logged_in: bool = False
    current_session: str = ""
    # Slots of joined sessions; a slot that was left holds "".
    sessions: List[str] = field(default_factory=list)
    quit: bool = False

    @property
    def joined(self) -> List[str]:
        """Session ids still held, in joining order."""
        return [s for s in self.sessions if s]


@dataclass(eq=False)
class Session:
    """A conference session and the connection numbers of its members."""

    session_id: str
    members: List[int] = field(default_factory=list)
    num_clients: int = 0


def _describe_user(user: User) -> str:
    lines = [
        f"clientFD: {user.fd}",
        f"clientID: {user.client_id}",
        f"pw: {user.password}",
        f"logged in: {int(user.logged_in)}",
        f"next avail: {len(user.sessions)}",
        f"current session: {user.current_session}",
    ]
    lines.extend(f"session: {s}" for s in user.sessions)
    return "\n".join(lines) + "\n"


class Registry:
    """The server's lists of users and sessions, safe to share between threads."""

    def __init__(self) -> None:
        self._users: List[User] = []
        self._sessions: List[Session] = []
        self._lock = threading.RLock()

    def _find_session(self, session_id: str) -> Optional[Session]:
        return next((s for s in self._sessions if s.session_id == session_id), None)

    def login(self, user: User) -> None:
        """Add a user to the list; refuse a client id that is already logged in."""
        with self._lock:
            if any(u.client_id == user.client_id for u in self._users):
                raise RegistryError("This user is already logged in")
            user.logged_in = True
            self._users.append(user)

    def logout(self, user: User) -> None:
        """Remove a logged-in user from the list."""
        with self._lock:
            if not user.logged_in:
                raise RegistryError("You're not even logged in")
            for index, other in enumerate(self._users):
                if other.fd == user.fd:
                    del self._users[index]
                    user.logged_in = False
                    return
            raise RegistryError("This user is not in the user list")

    def find_user(self, client_id: str) -> User:
        """Return the logged-in user with this client id."""
        with self._lock:
            if not self._users:
                raise RegistryError("There's no one logged in!\n")
            for user in self._users:
                if user.client_id == client_id:
                    return user
            raise RegistryError("Can't find that invitee!\n")

    def session_exists(self, session_id: str) -> bool:
        with self._lock:
            return self._find_session(session_id) is not None

    def create_session(self, session_id: str, user: User) -> Session:
        """Create a session and put its creator in it as the current session."""
        with self._lock:
            if self._find_session(session_id) is not None:
                raise RegistryError("This session already exists.\n")
            if not user.logged_in:
                raise RegistryError(
                    "You are not logged in. You can only create a session "
                    "when you're logged in.\n"
                )
            session = Session(session_id, [user.fd], 1)
            self._sessions.append(session)
            user.sessions.append(session_id)
            user.current_session = session_id
            return session

    def join_session(self, session_id: str, user: User) -> None:
        """Join a session, or switch to it if the user already holds it."""
        with self._lock:
            session = self._find_session(session_id)
            if session is None:
                raise RegistryError("Can't join session: session doesn't exist!\n")
            if not user.logged_in:
                raise RegistryError("Can't join session: you are not logged in!\n")
            if user.current_session == session_id:
                raise RegistryError(
                    "Can't join session: you are already in this session!\n"
                )
            if session_id in user.sessions:
                user.current_session = session_id
                return
            session.members.append(user.fd)
            session.num_clients += 1
            user.sessions.append(session_id)
            user.current_session = session_id

    def leave_session(self, session_id: str, user: User) -> None:
        """Leave a session; an emptied session is removed.

        If it was the current session, the most recently joined session still
        held becomes current, or none.
        """
        with self._lock:
            session = self._find_session(session_id)
            if session is None:
                raise RegistryError("This session doesn't exist.\n")
            if not session.members:
                self._sessions.remove(session)
            else:
                for index, member in enumerate(session.members):
                    if member == user.fd:
                        session.members[index] = _VACANT
                        session.num_clients -= 1
                        if session.num_clients == 0:
                            self._sessions.remove(session)
                        break
            for index, held in enumerate(user.sessions):
                if held == session_id:
                    user.sessions[index] = ""
                    break
            # The current session is compared on the leading part only.
            if user.current_session.startswith(session_id):
                user.current_session = next(
                    (s for s in reversed(user.sessions) if s), ""
                )

    def leave_all_sessions(self, user: User) -> None:
        """Leave every session the user still holds."""
        with self._lock:
            for held in list(user.sessions):
                if held and self._find_session(held) is not None:
                    self.leave_session(held, user)

    def remove_session(self, session_id: str) -> None:
        with self._lock:
            session = self._find_session(session_id)
            if session is None:
                raise RegistryError("This session doesn't exist.\n")
            self._sessions.remove(session)

    def user_ids(self) -> List[str]:
        with self._lock:
            return [u.client_id for u in self._users]

    def active_session_ids(self) -> List[str]:
        """Ids of sessions that still have members, in creation order."""
        with self._lock:
            return [s.session_id for s in self._sessions if s.num_clients != 0]

    def session_members(self, session_id: str) -> List[int]:
        """Connection numbers of the session's current members."""
        with self._lock:
            session = self._find_session(session_id)
            if session is None:
                raise RegistryError("This session doesn't exist.\n")
            return [m for m in session.members if m != _VACANT]

    def describe(self) -> str:
        """A readable listing of all users and sessions."""
        with self._lock:
            parts = ["These are the clients connected: "]
            if self._users:
                parts.extend(_describe_user(u) for u in self._users)
            else:
                parts.append("No user(s) to list. Nothing is connected.")
            parts.append("\nThese are the sessions available: ")
            if self._sessions:
                for session in self._sessions:
                    parts.extend(f"arr[i]: {m}" for m in session.members)
            else:
                parts.append("No active session!")
            return "\n".join(parts)
# confchat

A small text conferencing system made of a TCP server and an interactive
client. Users log in, create or join named sessions, and send messages to
everyone in their current session. They can also list who is online and
which sessions are active, and invite other users into a session.

## Installing

```
pip install .
```

## Running the server

```
confchat-server 5050
```

The only argument is the TCP port. The server listens on every IPv4
address and serves each connection in its own thread. If the argument count
is wrong, or the port cannot be set up or bound, it prints an error and
exits with status 1.

## Running the client

```
confchat-client
```

The client takes no arguments. It reads commands from standard input, one
per line:

| Command | Effect |
| --- | --- |
| `/login <id> <password> <host> <port>` | connect to the server (on the first login) and log in |
| `/logout` | leave every session and log out |
| `/createsession <session>` | create a session and make it the current one |
| `/joinsession <session>` | join an existing session, which becomes the current one |
| `/leavesession <session>` | leave a session |
| `/list` | show the users who are logged in and the sessions that have members |
| `/invite <id> <session>` | invite another logged-in user to an existing session |
| `/quit` | tell the server you are leaving and stop the client |

The client sends a command only after the first `/login` has been made.
Any other line, including an unknown `/word`, is sent as a message to your
current session. This works only after the server has acknowledged a
session you created or joined. Everyone in that session receives the
message, and so do you.

When you leave your current session, the session you joined most recently
and still belong to becomes current. A session is removed once its last
member leaves. An invitation is shown to the invited user as
`<you> invites <id> to join session: <session>`. It does not join them; they
use `/joinsession` for that.

An example exchange:

```
/login alice password 127.0.0.1 5050
/createsession lobby
hello everyone
/invite bob lobby
/list
/quit
```

## Using the library

### Packets: `confchat.packet`

Every packet on the wire is `WIRE_SIZE` (1060) bytes long. It holds a
little-endian unsigned 32-bit type and size, a 50-byte sender name and a
1000-byte data field, padded with NUL bytes.

```python
from confchat.packet import Message, PacketType, make_login, format_packet

packet = make_login("alice", "password")
raw = packet.encode()
back = Message.decode(raw)
assert back.type is PacketType.LOGIN
assert back.text() == "alice,password"
print(format_packet(back))
```

- `Message` is a frozen dataclass with `type`, `size`, `source` and `data`.
  `encode()` and `Message.decode(raw)` convert a message to bytes and back.
  `text()` and `sender()` return the data and the source as strings.
- A `PacketError` (a `ValueError`) is raised in three cases: the source is
  longer than 50 bytes, the data is longer than 1000 bytes, or `decode` gets
  the wrong number of bytes.
- `PacketType` lists every packet type code. `Command` and
  `parse_command(word)` map client command words such as `"joinsession"`
  to commands.
- There is one `make_*` function for each kind of packet. These are
  `make_login`, `make_logout`, `make_join`, `make_leave`,
  `make_new_session`, `make_invite`, `make_invite_ack`, `make_invite_nak`,
  `make_login_ack`, `make_login_nak`, `make_join_ack`, `make_join_nak`,
  `make_new_session_ack`, `make_new_session_nak`, `make_leave_ack`,
  `make_leave_nak`, `make_message`, `make_query`, `make_query_ack`,
  `make_logout_ack`, `make_logout_nak` and `make_quit`.

### Users and sessions: `confchat.registry`

`Registry` keeps the server's users and sessions behind a lock. Its methods
raise `RegistryError` with the reason when an operation is refused.

```python
from confchat.registry import Registry, User

registry = Registry()
alice = User(fd=1, client_id="alice")
registry.login(alice)
registry.create_session("lobby", alice)
assert registry.active_session_ids() == ["lobby"]
assert registry.session_members("lobby") == [1]
```

The other methods are `logout`, `find_user`, `session_exists`,
`join_session`, `leave_session`, `leave_all_sessions`, `remove_session`,
`user_ids` and `describe`.

### Server and client

`confchat.server.ChatServer` takes an optional `Registry`.
`process(packet, user)` handles one packet and returns the reply for that
user, or `None` when no reply is due. `handle_connection(conn)` serves one
socket. `serve_forever(port)` listens and accepts clients.

`confchat.client.ChatClient(conn=None, output=print)` holds the client
state. `handle_line(line)` handles one input line and returns the packet it
sent, if any. Its other methods are `login`, `receive_loop` and `close`.
`describe_reply(message)` turns a server reply into the line the client
shows.

## What it does not do

- Passwords are recorded but never checked. Any client id that is not
  already logged in is accepted.
- Nothing is stored. Users and sessions live only in the server's memory
  and are lost when it stops.
- Connections are plain, unencrypted TCP.

## Running the tests

```
pip install .[test]
pytest
```
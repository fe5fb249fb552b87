# babo

A small game server. Clients talk to it over a WebSocket. The server logs
players in against a MySQL database, pairs waiting players into two-player
rooms, and lets them enter those rooms.

## Installing

```
pip install .
```

The server connects to MySQL through SQLAlchemy's `mysql+pymysql` dialect,
so a MySQL driver has to be installed alongside it:

```
pip install pymysql
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Running the server

```
babo-game-server
```

Options:

- `--conf PATH` (also `-conf`): the YAML settings file, `./config/config.yml`
  by default.
- `--cancelprint BOOL` (also `-cancelprint`): when true, which is the
  default, log lines go only to the log files; `--cancelprint false` also
  prints them, with debug messages, to standard output.
- `--closedebug BOOL` (also `-closedebug`): accepted, currently ignored.

The settings file looks like this:

```yaml
gameserver:
  host: 0.0.0.0
  port: 10005
  workid: 1
  datacenterid: 1
  jsonpath: ./json
  mysql:
    ip: 127.0.0.1
    port: "3306"
    user: user
    pwd: password
    dbname: babo
```

At startup the server sets up the id generator from `workid` and
`datacenterid` (each 0 to 31), starts matchmaking, connects to MySQL,
creates the `account_data` and `user_data` tables if they are missing,
registers the request handlers and then listens for WebSocket connections
on `host:port`. Logs go to `./log/info/gameserver.log` and
`./log/err/gameserver.err.log`, rotated at 100 MB and gzip-compressed. The
server stops on SIGINT or SIGTERM; the command exits with status 1 if
startup fails.

## The wire protocol

Every WebSocket message is a binary frame holding one `Proto` envelope in
protobuf wire format: a `MsgId` and an encoded body. Replies carry the same
id as the request. `babo.protocol.encode_proto` and
`babo.protocol.decode_proto` build and read envelopes; `encode` and
`decode` handle single messages.

| Message     | Request        | Reply          |
|-------------|----------------|----------------|
| `LOGIN`       | `LoginReq`     | `LoginRsp`     |
| `HEART_BEAT`  | `HeartBeatReq` | `HeartBeatRsp` |
| `MATCH`       | `MatchReq`     | `MatchRsp`     |
| `ENTER_ROOM`  | `EnterRoomReq` | `EnterRoomRsp` |

The server also sends `MATCH_RESULT` (`MatchResultNtf`) and
`USER_ENTER_ROOM` (`UserEnterRoomNtf`) on its own.

- A login with an unknown account creates the account and its user record
  with a fresh uid; the reply carries the uid.
- A heartbeat is answered with the server time in seconds.
- A match request queues the player. Once a second queued players are
  paired in arrival order, each pair gets a room with a generated id, and
  both players receive a `MatchResultNtf` with the room id and their
  opponent's uid.
- Entering a room fails (`ResCode.FAIL`) if the room does not exist, the
  player is not in it, or has already entered. Otherwise the reply names a
  player who entered earlier, if any, and the other player receives a
  `UserEnterRoomNtf`.

## Trying it out

```
babo-virtual-client --url ws://localhost:10005
```

connects to a server, sends a login for the account `test`, and logs each
reply until the server closes the connection.

## Library pieces

- `babo.uuid`: snowflake-style 64-bit id `Generator`, and the process-wide
  `init` and `generate`.
- `babo.trie`: `Trie` that tells whether any inserted word occurs in a text.
- `babo.mq`: bounded `DefaultQueue` and unbounded `NonBlockingQueue`.
- `babo.handlers`: `HandlerRegistry` mapping message ids to handlers.
- `babo.common`: helpers such as `sort_pairs`, `build_item_briefs`,
  `str_to_int64`, `protect_error` and `rand_string`.
- `babo.ws`: `Service`, `Session` and `RemoteCtl` for the WebSocket side.
- `babo.orm`: `connect`, `connect_url` and the `SqlLogger` that logs SQL
  statements, errors and slow queries.

## What it does not do

- No secure WebSocket (`wss`) or plain TCP service; only `ws`.
- Login trusts the account name: there is no password or token check, and
  a second login of the same account is not detected.
- Rooms are never closed or removed, and a disconnecting player is not
  taken out of the match queue or its room.
- The `jsonpath` setting is read but nothing is loaded from it.
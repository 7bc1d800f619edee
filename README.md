# wisdompow

A small TCP quote service protected by a proof-of-work challenge. Before a
client may fetch a quote it asks the server for a challenge, searches for a
nonce whose Argon2id digest passes the challenge's difficulty check, and sends
that nonce along with its quote request. A challenge can be checked once,
whether the nonce is right or wrong, and expires after 30 seconds; expired
challenges are swept out every 30 seconds.

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Running

Start the server:

```
wisdompow-server
```

Then, in another terminal, the client:

```
wisdompow-client
```

Neither command takes options; both are configured through `config.yaml`
and the environment (see below). Logs go to standard error.

By default the client requests one challenge, solves it, asks for a quote
and exits. In interactive mode it prompts `Enter command: ` and reads
commands from standard input instead; unknown commands are ignored:

| command     | effect                                                   |
|-------------|----------------------------------------------------------|
| `challenge` | request a challenge and log it                           |
| `quote`     | request a challenge, solve it and fetch a quote          |
| `echo`      | send `"Hello, world!"` and receive it back               |
| `error`     | ask the server for a sample error response               |
| `exit`      | quit                                                     |

## Configuration

Both programs read `config.yaml` from the working directory if it exists.
Environment variables take precedence over the file; an empty variable
counts as unset. Keys in the file are matched without regard to case.

Server:

| key    | environment | meaning                         |
|--------|-------------|---------------------------------|
| `addr` | `ADDR`      | address to listen on (required) |

Client:

| key                  | environment            | meaning                                          |
|----------------------|------------------------|--------------------------------------------------|
| `addr`               | `ADDR`                 | server address (required)                        |
| `isInteractive`      | `INTERACTIVE`          | read commands from standard input                |
| `sendWrongChallenge` | `SEND_WRONG_CHALLENGE` | send a wrong nonce, to see the server refuse it  |

Addresses have the form `host:port`. An empty host (`:8080`) makes the
server listen on all interfaces and the client connect to `localhost`.
Boolean settings accept `1`, `t`, `true`, `0`, `f`, `false` and the like.

Example `config.yaml`:

```yaml
addr: "localhost:8080"
isInteractive: true
```

Unknown keys in the file are an error, as is a missing `addr`.

## Proof of work

The digest is Argon2id (1 iteration, 64 MiB, 1 lane, 32 bytes) of the
challenge id followed by the decimal nonce, salted with the challenge id.
For difficulty `d` (6 by default) the first `d // 8` bytes must be zero and,
if `d % 8` is not zero, the low `d % 8` bits of the next byte must be zero.
The client tries nonces from 1 upward and gives up after 1,000,000.

## Wire format

Every message is a 4-byte big-endian length followed by that many bytes of
JSON, at most 1 MiB. A request looks like

```json
{"id": 1, "method": "quote", "params": null,
 "auth": {"challenge_id": "…", "nonce": 42}}
```

and a response carries either `result` or `error` (`{"code": 401,
"message": "Unauthorized"}`). Methods:

- `challenge` returns `{"id", "difficulty", "expires_at"}`;
- `quote` needs a valid `auth` and returns a quote string, else 401
  (or 500 if the challenge is unknown or expired);
- `echo` returns the request's `params`;
- `error` answers 400 `example error response`;
- anything else answers 404 `Method not found`.

The server answers each request in its own thread, so responses on one
connection may arrive out of order; match them by `id`.

## Library use

The pieces are importable on their own:

- `wisdompow.protocol`: `Request`, `Response`, `Auth`, `ResponseError`,
  `read_request`, `write_request`, `read_response`, `write_response`,
  `new_request`, `new_response`, `new_error_response`,
  `MessageTooLargeError`;
- `wisdompow.pow`: `PowService`, `Challenge`, `ChallengeNotFoundError`,
  `solve_challenge`, `compute_hash`, `has_leading_zeros`;
- `wisdompow.handler`: `RequestHandler` and the individual handlers;
- `wisdompow.server`: `Server`, `ConnectionHandler`;
- `wisdompow.client`: `Cli`, `connect`, `run_cli`;
- `wisdompow.config`: `load_config`, `ClientConfig`, `ServerConfig`,
  `ConfigError`;
- `wisdompow.quotes`: `get_random_quote`;
- `wisdompow.logsetup`: `init_logging`.

## Limitations

The quote collection is a fixed set of placeholder strings (`example1` to
`example17`). Challenges live only in the server's memory and are lost when
it stops. There is no TLS or other encryption on the connection.
# airmirror

Building blocks for an AirPlay screen-mirroring receiver, in pure Python.

## Modules

- `airmirror.logger`: `Logger`, a thread-safe logger that drops messages less
  severe than its level (`LogLevel`, syslog-style, default `WARNING`) and sends
  the rest to a callback or to stderr; `console_log` prints to stdout.
- `airmirror.byteutils`: little- and big-endian integer readers (`get_short`,
  `get_int`, `get_long`, `get_short_be`, `get_int_be`, `get_long_be`),
  `get_float`, `put_int`, and NTP timestamp conversion
  (`get_ntp_timestamp`, `put_ntp_timestamp`, in microseconds since 1970).
- `airmirror.http_semantics`: error codes (`Errno`, `errno_name`), methods
  (`Method`, `method_name`), header flags and the framing rules that decide how
  a body is delimited (`after_headers_complete`, returning a `BodyMode`) and
  whether a connection may be reused (`should_keep_alive`).
- `airmirror.http_request`: `HttpRequest`, an incremental HTTP/RTSP request
  parser. `add_data` raises `HttpParseError` on malformed input; the result is
  read through `complete`, `method`, `url`, `version`, `headers`, `header()`,
  `header_string()`, `data` and `keep_alive`.
- `airmirror.http_response`: `HttpResponse`, a response builder. `finish()`
  adds `Content-Length` when a body is given; `data` holds the wire bytes and
  `disconnect` asks the server to close the connection after sending.
- `airmirror.crypto`: `AesCtr`, `AesCbc` (no padding), `X25519Key`,
  `Ed25519Key` and `Sha512`, on top of `cryptography`; failures raise
  `CryptoError`.
- `airmirror.pairing`: the pair-verify handshake (`Pairing`,
  `PairingSession`); out-of-order steps and bad signatures raise
  `PairingError`.
- `airmirror.fairplay`: `FairPlay`, which answers the 16-byte setup request
  with the fixed 142-byte reply for its mode and the 164-byte handshake request
  with a 32-byte reply, keeping the key message in `key_message`.
- `airmirror.mirror_buffer`: `MirrorBuffer`, which derives the video AES key
  and IV from the audio key and stream connection id (`init_aes`) and decrypts
  packets of any length as one continuous CTR keystream (`decrypt`); plus the
  `H264Frame` and `AudioFrame` records.
- `airmirror.netutils`: `init_socket` (bind on all interfaces, returns the
  socket and bound port), `get_address` (raw address bytes, IPv4-mapped IPv6
  reduced to IPv4) and `parse_address`.
- `airmirror.httpd`: `HttpServer`, a select-based IPv4 server on a background
  thread that parses requests per connection and hands them to `HttpCallbacks`.

## Installation

```
pip install .
```

## Examples

Parse a request and answer it:

```python
from airmirror.http_request import HttpRequest
from airmirror.http_response import HttpResponse

request = HttpRequest()
request.add_data(b"OPTIONS * RTSP/1.0\r\nCSeq: 1\r\n\r\n")
if request.complete:
    response = HttpResponse("RTSP/1.0", 200, "OK")
    response.add_header("CSeq", request.header("CSeq"))
    response.finish(b"")
    payload = response.data
```

Serve requests:

```python
from airmirror.httpd import HttpCallbacks, HttpServer
from airmirror.http_response import HttpResponse
from airmirror.logger import Logger, LogLevel

def conn_init(local, remote):
    return {"remote": remote}

def conn_request(state, request):
    response = HttpResponse("RTSP/1.0", 200, "OK")
    response.add_header("CSeq", request.header("CSeq") or "0")
    response.finish()
    return response

def conn_destroy(state):
    pass

logger = Logger(LogLevel.INFO)
with HttpServer(logger, HttpCallbacks(conn_init, conn_request, conn_destroy), 10) as server:
    port = server.start(0)
    ...
```

Run the receiving side of a pairing handshake:

```python
from airmirror.crypto import Ed25519Key, X25519Key
from airmirror.pairing import Pairing

server = Pairing.generate()
session = server.session()
session.set_setup_status()

client_ecdh = X25519Key.generate()
client_ed = Ed25519Key.generate()
session.handshake(client_ecdh.public_bytes(), client_ed.public_bytes())
our_ecdh_public = session.public_key()
encrypted_signature = session.signature()
# session.finish(peer_encrypted_signature) verifies the peer's reply.
```

## What the package does not do

It provides the pieces, not a complete receiver. There is no command-line
program, no Bonjour/DNS-SD service advertisement, no handling of the RTSP
session itself (no `SETUP`, `RECORD` or stream endpoints), and no video or
audio decoding or display. `FairPlay` answers setup and handshake requests and
keeps the key message, but does not decrypt keys with it. `HttpServer` listens
on IPv4 only.

## Running the tests

```
pip install .[test]
pytest
```
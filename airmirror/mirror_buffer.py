"""Decryption of the screen-mirroring video stream."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .crypto import AES_128_BLOCK_SIZE, AesCtr, Sha512
from .logger import Logger, LogLevel

AESKEY_LEN = 16

_U64 = 0xFFFFFFFFFFFFFFFF


@dataclass
class H264Frame:
    """A decoded-ready chunk of H.264 NAL units."""

    nal_count: int
    data: bytes
    pts: int

    @property
    def data_len(self) -> int:
        return len(self.data)


@dataclass
class AudioFrame:
    """A chunk of audio with its timing information."""

    data: bytes
    ntp_time: int
    rtp_time: int
    seqnum: int

    @property
    def data_len(self) -> int:
        return len(self.data)


def _hash_with_key(prefix: bytes, aeskey: bytes) -> bytes:
    digest = Sha512()
    digest.update(prefix)
    digest.update(aeskey)
    return digest.digest()[:AES_128_BLOCK_SIZE]


class MirrorBuffer:
    """AES-CTR decryption of mirroring packets as one continuous keystream.

    Packets need not be multiples of the block size: keystream left over
    from a partial block is applied to the start of the next packet.
    """

    def __init__(self, aeskey: bytes, logger: Optional[Logger] = None) -> None:
        aeskey = bytes(aeskey)
        if len(aeskey) != AESKEY_LEN:
            raise ValueError(f"AES key must be {AESKEY_LEN} bytes, got {len(aeskey)}")
        self._aeskey_audio = aeskey
        self._logger = logger
        self._cipher: Optional[AesCtr] = None
        self._leftover = bytes(AES_128_BLOCK_SIZE)
        self._pending = 0

    def init_aes(self, stream_connection_id: int) -> None:
        """Derive the video key and IV from the stream connection id."""
        stream_id = stream_connection_id & _U64
        key = _hash_with_key(b"AirPlayStreamKey%d" % stream_id, self._aeskey_audio)
        iv = _hash_with_key(b"AirPlayStreamIV%d" % stream_id, self._aeskey_audio)
        self._cipher = AesCtr(key, iv)
        self._leftover = bytes(AES_128_BLOCK_SIZE)
        self._pending = 0
        if self._logger is not None:
            self._logger.log(
                LogLevel.DEBUG, "Initialized mirror stream cipher for %d", stream_id
            )

    def decrypt(self, data: bytes) -> bytes:
        """Decrypt one packet and return the plaintext of the same length."""
        if self._cipher is None:
            raise RuntimeError("init_aes must be called before decrypt")
        data = bytes(data)
        out = bytearray()

        head = min(self._pending, len(data))
        if head:
            start = AES_128_BLOCK_SIZE - self._pending
            keystream = self._leftover[start:start + head]
            out += bytes(a ^ b for a, b in zip(data[:head], keystream))
            self._pending -= head
            if self._pending:
                return bytes(out)

        body = data[head:]
        whole = len(body) // AES_128_BLOCK_SIZE * AES_128_BLOCK_SIZE
        self._cipher.start_fresh_block()
        out += self._cipher.decrypt(body[:whole])

        rest = body[whole:]
        if rest:
            padded = rest + bytes(AES_128_BLOCK_SIZE - len(rest))
            block = self._cipher.decrypt(padded)
            out += block[:len(rest)]
            self._leftover = block
            self._pending = AES_128_BLOCK_SIZE - len(rest)
        return bytes(out)
"""FairPlay setup and handshake replies."""

from __future__ import annotations

from typing import Optional

from .logger import Logger, LogLevel

SETUP_REQUEST_LEN = 16
SETUP_REPLY_LEN = 142
HANDSHAKE_REQUEST_LEN = 164
HANDSHAKE_REPLY_LEN = 32

_SUPPORTED_VERSION = 0x03

_REPLY_MESSAGES = (
    bytes.fromhex(
        "46504c5903010200000000820200 0f9f"
        "3f9e0a2521dbdf312ab2bfb29e8d232b"
        "6376a8c818701d22ae93d82737feaf9d"
        "b4fdf41c2dba9d1f49caaabf6591ac1f"
        "7bc6f7e0663d21afe01565953eab81f4"
        "18ceed095adb7c3d0e254909a79831d4"
        "9c3982973434facb42c63a1cd911a6fe"
        "941a8a6d4a743b46c3a7649e44c78955"
        "e49d8155009549c4e2f7a3f6d5ba"
    ),
    bytes.fromhex(
        "46504c5903010200000000820201cf32"
        "a25714b2524f8aa0ad7af164e37bcf44"
        "24e200047efc0ad67afcd95ded1c2730"
        "bb591b962ed63a9c4ded88ba8fc78de6"
        "4d91ccfd5c7b56da88e31f5cceafc743"
        "1995a01665a54e1939d25b94db64b9e4"
        "5d8d063e1e6af07e9656162b0efa4042"
        "75ea5a44d9591c7256b9fbe6513898b8"
        "0227721988571650942ad946688a"
    ),
    bytes.fromhex(
        "46504c5903010200000000820202c169"
        "a352eeed35b18cdd9c58d64f16c1519a"
        "89eb5317bd0d4336cd68f638ff9d016a"
        "5b52b7fa9216b2b65482c78444118121"
        "a2c7fed83db7119e9182aad7d18c7063"
        "e2a457555910af9e0efc76347d164043"
        "807f581ee4fbe42ca9dedc1b5eb2a3aa"
        "3d2ecd59e7eee70b3629f22afd161d87"
        "7353ddb99adc8e07006e56f850ce"
    ),
    bytes.fromhex(
        "46504c590301020000000082020390 01"
        "e1727e0f57f9f5880db104a6257a23f5"
        "cfff1abbe1e93045251afb97eb9fc001"
        "1ebe0f3a81df5b691d76acb2f7a5c708"
        "e3d328f56bb39dbde5f29c8a17f48148"
        "7e3ae863c678325422e6f78e166d18aa"
        "7fd636258bce28726f661f738893ce44"
        "311e4be6c0535193e5ef72e868623372"
        "9c227d820c999445d89246c8c359"
    ),
)

_FP_HEADER = bytes.fromhex("46504c590301040000000014")


class FairPlayError(Exception):
    """A FairPlay request could not be answered."""


class FairPlay:
    """Answers the FairPlay setup and handshake requests of a sender."""

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self._logger = logger
        self._keymsg: Optional[bytes] = None

    @property
    def key_message(self) -> Optional[bytes]:
        """The handshake request kept for later key decryption, if any."""
        return self._keymsg

    def _check(self, request: bytes, length: int) -> bytes:
        request = bytes(request)
        if len(request) < length:
            raise FairPlayError(
                f"request must be at least {length} bytes, got {len(request)}"
            )
        if request[4] != _SUPPORTED_VERSION:
            if self._logger is not None:
                self._logger.log(
                    LogLevel.ERR, "Unsupported FairPlay version %d", request[4]
                )
            raise FairPlayError(f"unsupported FairPlay version {request[4]}")
        return request

    def setup(self, request: bytes) -> bytes:
        """Reply to a 16-byte setup request with the 142-byte message for its mode."""
        request = self._check(request, SETUP_REQUEST_LEN)
        mode = request[14]
        if mode >= len(_REPLY_MESSAGES):
            raise FairPlayError(f"unsupported FairPlay mode {mode}")
        self._keymsg = None
        return _REPLY_MESSAGES[mode]

    def handshake(self, request: bytes) -> bytes:
        """Keep the 164-byte key message and return the 32-byte reply."""
        request = self._check(request, HANDSHAKE_REQUEST_LEN)
        self._keymsg = request[:HANDSHAKE_REQUEST_LEN]
        return _FP_HEADER + request[144:164]
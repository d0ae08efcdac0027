"""Pair-verify handshake: X25519 key agreement authenticated with Ed25519."""

from __future__ import annotations

from enum import Enum, auto

from .crypto import (
    AES_128_BLOCK_SIZE,
    X25519_KEY_SIZE,
    AesCtr,
    Ed25519Key,
    Sha512,
    X25519Key,
)

PAIRING_SIG_SIZE = 2 * X25519_KEY_SIZE

SALT_KEY = b"Pair-Verify-AES-Key"
SALT_IV = b"Pair-Verify-AES-IV"

_SHA512_DIGEST_LENGTH = 64


class PairingError(Exception):
    """A pairing step was attempted out of order or failed verification."""


class _Status(Enum):
    INITIAL = auto()
    SETUP = auto()
    HANDSHAKE = auto()
    FINISHED = auto()


def _derive_key(secret: bytes, salt: bytes, length: int = AES_128_BLOCK_SIZE) -> bytes:
    """First ``length`` bytes of SHA-512 over ``salt`` followed by ``secret``."""
    if length > _SHA512_DIGEST_LENGTH:
        raise PairingError(f"cannot derive {length} bytes from a SHA-512 digest")
    digest = Sha512()
    digest.update(salt)
    digest.update(secret)
    return digest.digest()[:length]


def _session_cipher(secret: bytes) -> AesCtr:
    """The AES-CTR cipher both parties use to wrap their signatures."""
    return AesCtr(_derive_key(secret, SALT_KEY), _derive_key(secret, SALT_IV))


class Pairing:
    """The long-term Ed25519 identity of this device."""

    def __init__(self, key: Ed25519Key) -> None:
        self._key = key

    @classmethod
    def generate(cls) -> "Pairing":
        return cls(Ed25519Key.generate())

    @property
    def key(self) -> Ed25519Key:
        return self._key

    def public_key(self) -> bytes:
        return self._key.public_bytes()

    def session(self) -> "PairingSession":
        return PairingSession(self)


class PairingSession:
    """One pair-verify exchange with a peer."""

    def __init__(self, pairing: Pairing) -> None:
        if pairing is None:
            raise PairingError("a pairing identity is required")
        self._status = _Status.INITIAL
        self._ed_ours = pairing.key
        self._ed_theirs = None
        self._ecdh_ours = None
        self._ecdh_theirs = None
        self._ecdh_secret = bytes(X25519_KEY_SIZE)

    def set_setup_status(self) -> None:
        self._status = _Status.SETUP

    def check_handshake_status(self) -> bool:
        """Whether the session is in a state that allows a handshake."""
        return self._status in (_Status.SETUP, _Status.HANDSHAKE)

    def handshake(self, ecdh_key: bytes, ed_key: bytes) -> None:
        """Take the peer's public keys and derive the shared secret."""
        if self._status is _Status.FINISHED:
            raise PairingError("pairing session is already finished")
        self._ecdh_theirs = X25519Key.from_raw(ecdh_key)
        self._ed_theirs = Ed25519Key.from_raw(ed_key)
        self._ecdh_ours = X25519Key.generate()
        self._ecdh_secret = self._ecdh_ours.derive_secret(self._ecdh_theirs)
        self._status = _Status.HANDSHAKE

    def _require_handshake(self) -> None:
        if self._status is not _Status.HANDSHAKE:
            raise PairingError("pairing session is not in the handshake state")

    def public_key(self) -> bytes:
        """Our ephemeral X25519 public key."""
        self._require_handshake()
        return self._ecdh_ours.public_bytes()

    def signature(self) -> bytes:
        """Our signature over both ECDH keys, encrypted with the shared secret."""
        self._require_handshake()
        message = self._ecdh_ours.public_bytes() + self._ecdh_theirs.public_bytes()
        signed = self._ed_ours.sign(message)
        return _session_cipher(self._ecdh_secret).encrypt(signed)

    def finish(self, signature: bytes) -> None:
        """Decrypt and verify the peer's signature; raise PairingError if bad."""
        self._require_handshake()
        cipher = _session_cipher(self._ecdh_secret)
        # Skip the keystream already used for our own signature.
        cipher.encrypt(bytes(PAIRING_SIG_SIZE))
        plain = cipher.encrypt(bytes(signature))
        message = self._ecdh_theirs.public_bytes() + self._ecdh_ours.public_bytes()
        if not self._ed_theirs.verify(plain, message):
            raise PairingError("peer signature does not verify")
        self._status = _Status.FINISHED

    def ecdh_secret(self) -> bytes:
        return self._ecdh_secret
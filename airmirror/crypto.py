"""AES-128 (CTR and CBC), X25519, Ed25519 and SHA-512 helpers."""

from __future__ import annotations

import hashlib
from enum import IntEnum
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

AES_128_BLOCK_SIZE = 16
X25519_KEY_SIZE = 32
ED25519_KEY_SIZE = 32


class CryptoError(Exception):
    """A cryptographic operation could not be carried out."""


class AesDirection(IntEnum):
    DECRYPT = 0
    ENCRYPT = 1


def _check_block(name: str, value: bytes) -> bytes:
    value = bytes(value)
    if len(value) != AES_128_BLOCK_SIZE:
        raise CryptoError(
            f"{name} must be {AES_128_BLOCK_SIZE} bytes, got {len(value)}"
        )
    return value


class AesCtr:
    """AES-128 in counter mode, keeping the keystream position across calls."""

    def __init__(self, key: bytes, iv: bytes) -> None:
        self._key = _check_block("key", key)
        self._iv = _check_block("iv", iv)
        self._block_offset = 0
        self._context = self._new_context()

    def _new_context(self):
        cipher = Cipher(algorithms.AES(self._key), modes.CTR(self._iv))
        return cipher.encryptor()

    @property
    def block_offset(self) -> int:
        """Position inside the current keystream block after the last encrypt."""
        return self._block_offset

    def encrypt(self, data: bytes) -> bytes:
        out = self._context.update(bytes(data))
        self._block_offset = (self._block_offset + len(data)) % AES_128_BLOCK_SIZE
        return out

    def decrypt(self, data: bytes) -> bytes:
        """Apply the keystream without moving the tracked block offset."""
        return self._context.update(bytes(data))

    def start_fresh_block(self) -> None:
        """Skip the rest of the current keystream block."""
        if self._block_offset == 0:
            return
        self.encrypt(bytes(AES_128_BLOCK_SIZE - self._block_offset))

    def reset(self) -> None:
        """Restart the keystream from the original key and IV."""
        self._context = self._new_context()


class AesCbc:
    """AES-128 in CBC mode without padding, chaining across calls."""

    def __init__(self, key: bytes, iv: bytes, direction: AesDirection) -> None:
        self._key = _check_block("key", key)
        self._iv = _check_block("iv", iv)
        self.direction = AesDirection(direction)
        self._context = self._new_context()

    def _new_context(self):
        cipher = Cipher(algorithms.AES(self._key), modes.CBC(self._iv))
        if self.direction is AesDirection.ENCRYPT:
            return cipher.encryptor()
        return cipher.decryptor()

    def _process(self, data: bytes, direction: AesDirection) -> bytes:
        if self.direction is not direction:
            raise CryptoError(
                f"context was created for {self.direction.name.lower()}ion"
            )
        data = bytes(data)
        if len(data) % AES_128_BLOCK_SIZE:
            raise CryptoError("data length is not a multiple of the block size")
        return self._context.update(data)

    def encrypt(self, data: bytes) -> bytes:
        return self._process(data, AesDirection.ENCRYPT)

    def decrypt(self, data: bytes) -> bytes:
        return self._process(data, AesDirection.DECRYPT)

    def reset(self) -> None:
        """Restart chaining from the original key and IV."""
        self._context = self._new_context()


def _raw_public(public) -> bytes:
    return public.public_bytes(Encoding.Raw, PublicFormat.Raw)


class X25519Key:
    """An X25519 key: a generated key pair or a peer's public key."""

    def __init__(
        self,
        public: X25519PublicKey,
        private: Optional[X25519PrivateKey] = None,
    ) -> None:
        self._public = public
        self._private = private

    @classmethod
    def generate(cls) -> "X25519Key":
        private = X25519PrivateKey.generate()
        return cls(private.public_key(), private)

    @classmethod
    def from_raw(cls, data: bytes) -> "X25519Key":
        try:
            return cls(X25519PublicKey.from_public_bytes(bytes(data)))
        except ValueError as exc:
            raise CryptoError(f"invalid X25519 public key: {exc}") from exc

    def public_bytes(self) -> bytes:
        return _raw_public(self._public)

    def derive_secret(self, theirs: "X25519Key") -> bytes:
        """Compute the shared secret with the peer key ``theirs``."""
        if self._private is None:
            raise CryptoError("an X25519 private key is required to derive")
        try:
            return self._private.exchange(theirs._public)
        except ValueError as exc:
            raise CryptoError(f"X25519 derivation failed: {exc}") from exc


class Ed25519Key:
    """An Ed25519 key: a generated signing key or a peer's public key."""

    def __init__(
        self,
        public: Ed25519PublicKey,
        private: Optional[Ed25519PrivateKey] = None,
    ) -> None:
        self._public = public
        self._private = private

    @classmethod
    def generate(cls) -> "Ed25519Key":
        private = Ed25519PrivateKey.generate()
        return cls(private.public_key(), private)

    @classmethod
    def from_raw(cls, data: bytes) -> "Ed25519Key":
        try:
            return cls(Ed25519PublicKey.from_public_bytes(bytes(data)))
        except ValueError as exc:
            raise CryptoError(f"invalid Ed25519 public key: {exc}") from exc

    def public_bytes(self) -> bytes:
        return _raw_public(self._public)

    def sign(self, data: bytes) -> bytes:
        if self._private is None:
            raise CryptoError("an Ed25519 private key is required to sign")
        return self._private.sign(bytes(data))

    def verify(self, signature: bytes, data: bytes) -> bool:
        try:
            self._public.verify(bytes(signature), bytes(data))
        except InvalidSignature:
            return False
        return True


class Sha512:
    """Incremental SHA-512 digest."""

    def __init__(self) -> None:
        self._hash = hashlib.sha512()

    def update(self, data: bytes) -> None:
        self._hash.update(bytes(data))

    def digest(self) -> bytes:
        return self._hash.digest()

    def reset(self) -> None:
        self._hash = hashlib.sha512()
"""Credential capability used to open stored GitHub tokens.

The cipher is supplied by the host application; this package never sees
key material.
"""

from __future__ import annotations

from typing import Protocol


class TokenCipher(Protocol):
    def encrypt(self, plaintext: str, identity: str) -> str:
        ...

    def decrypt(self, blob: str, identity: str) -> str:
        ...

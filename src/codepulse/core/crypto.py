"""Fernet encryption for fix payloads at rest."""

from __future__ import annotations

from pathlib import Path

from cryptography.fernet import Fernet

KEY_FILENAME = "payload.key"


def get_or_create_key(state_dir: Path) -> bytes:
    """Get the project's payload key, generating it on first use."""
    key_file = state_dir / KEY_FILENAME
    if key_file.exists():
        return key_file.read_bytes().strip()

    key = Fernet.generate_key()
    state_dir.mkdir(parents=True, exist_ok=True)
    key_file.write_bytes(key)
    key_file.chmod(0o600)
    return key


class PayloadCipher:
    """Encrypts and decrypts text payloads with the project key."""

    def __init__(self, state_dir: Path):
        self._fernet = Fernet(get_or_create_key(state_dir))

    def encrypt(self, text: str) -> bytes:
        return self._fernet.encrypt(text.encode("utf-8"))

    def decrypt(self, token: bytes) -> str:
        return self._fernet.decrypt(token).decode("utf-8")

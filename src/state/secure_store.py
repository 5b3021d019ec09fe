from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

from cryptography.fernet import Fernet, InvalidToken


logger = logging.getLogger(__name__)


STORE_FILENAME = "secure_store.bin"
KEY_FILENAME = "store.key"


def _to_fernet(key: str | bytes) -> Fernet:
    """Construct a Fernet instance from a user-provided key.

    The key must be a URL-safe base64-encoded 32-byte key (str or bytes),
    as returned by `cryptography.fernet.Fernet.generate_key()`.
    """
    if isinstance(key, str):
        key_bytes = key.encode("utf-8")
    else:
        key_bytes = key
    return Fernet(key_bytes)


def _dump_items_json(items: Mapping[str, str]) -> bytes:
    # Deterministic JSON: stable key order, no extra whitespace
    return json.dumps(dict(items), separators=(",", ":"), sort_keys=True).encode("utf-8")


def _load_items_json(data: bytes) -> Dict[str, str]:
    raw = json.loads(data.decode("utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Secure store payload is not an object")
    return {str(k): str(v) for k, v in raw.items()}


def load_or_create_key(home: os.PathLike[str] | str) -> bytes:
    """Return the Fernet key stored under `home`, generating it on first use."""
    path = Path(home) / KEY_FILENAME
    if path.exists():
        return path.read_bytes().strip()
    path.parent.mkdir(parents=True, exist_ok=True)
    key = Fernet.generate_key()
    _write_private(path, key)
    logger.info("Generated new secure store key at %s", path)
    return key


def _write_private(path: Path, data: bytes) -> None:
    tmp = path.with_name(f"{path.name}.tmp")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as f:
        f.write(data)
    os.replace(tmp, path)


class SecureStore:
    """
    On-device key-value store for credentials, encrypted at rest using Fernet.

    Usage
    - `get_item(key)` returns the stored string or None when absent.
    - `set_item(key, value)` / `delete_item(key)` rewrite the encrypted file.
    - `set_items(...)` / `delete_items(...)` change several keys in a single write.

    Notes
    - The whole map is kept in one file, written atomically with mode 0600.
    - A missing file is an empty store. A file that cannot be decrypted raises
      ValueError on access.
    """

    def __init__(self, *, path: os.PathLike[str] | str, fernet_key: str | bytes) -> None:
        self._path = Path(path)
        self._fernet = _to_fernet(fernet_key)

    # -------- Construction helpers --------
    @classmethod
    def at_home(cls, home: os.PathLike[str] | str, *, fernet_key: Optional[str | bytes] = None) -> "SecureStore":
        key = fernet_key or load_or_create_key(home)
        return cls(path=Path(home) / STORE_FILENAME, fernet_key=key)

    @property
    def path(self) -> Path:
        return self._path

    # -------- Core operations --------
    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        self.set_items({key: value})

    def delete_item(self, key: str) -> None:
        self.delete_items([key])

    def set_items(self, items: Mapping[str, str]) -> None:
        data = self._read()
        data.update({k: str(v) for k, v in items.items()})
        self._write(data)

    def delete_items(self, keys: Iterable[str]) -> None:
        data = self._read()
        changed = False
        for key in keys:
            if key in data:
                del data[key]
                changed = True
        if changed:
            self._write(data)

    # -------- Internal --------
    def _read(self) -> Dict[str, str]:
        """Read and decrypt the whole map.

        Raises:
        - ValueError if decryption fails or content is invalid JSON.
        """
        if not self._path.exists():
            return {}
        body = self._path.read_bytes()
        try:
            decrypted = self._fernet.decrypt(body)
        except InvalidToken as ex:
            raise ValueError("Failed to decrypt secure store: invalid Fernet token") from ex
        try:
            return _load_items_json(decrypted)
        except ValueError:
            raise
        except Exception as ex:
            raise ValueError("Failed to parse decrypted secure store JSON") from ex

    def _write(self, data: Mapping[str, str]) -> None:
        ciphertext = self._fernet.encrypt(_dump_items_json(data))
        self._path.parent.mkdir(parents=True, exist_ok=True)
        _write_private(self._path, ciphertext)


__all__ = ["SecureStore", "load_or_create_key"]

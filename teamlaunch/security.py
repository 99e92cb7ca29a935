"""Encryption, secure deletion, an audit trail and file integrity checks."""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import sys
import time
from datetime import datetime
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .paths import _clean

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
_OVERWRITE_PASSES = 3
_FILE_MODE = 0o600


class SecurityError(Exception):
    """A security operation could not be carried out."""


def _claude_dir() -> Path:
    try:
        return Path.home() / ".claude"
    except RuntimeError as exc:
        raise SecurityError(f"failed to get home directory: {exc}") from exc


def _checked_path(file_path: str) -> str:
    cleaned = _clean(file_path)
    if ".." in cleaned:
        raise SecurityError("file path contains directory traversal")
    return cleaned


def _append(path: str, text: str, what: str) -> None:
    try:
        fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, _FILE_MODE)
    except OSError as exc:
        raise SecurityError(f"failed to open {what}: {exc}") from exc
    try:
        with os.fdopen(fd, "a", encoding="utf-8") as handle:
            handle.write(text)
    except OSError as exc:
        raise SecurityError(f"failed to write {what}: {exc}") from exc


def _rfc3339_now() -> str:
    stamp = datetime.now().astimezone().isoformat(timespec="seconds")
    return stamp[:-6] + "Z" if stamp.endswith("+00:00") else stamp


class AuditTrail:
    """Appends security events to a log file."""

    def __init__(self, log_file: str | os.PathLike[str] | None = None) -> None:
        self.log_file = str(log_file) if log_file is not None else str(
            _claude_dir() / "security_audit.log"
        )

    def log_security_event(self, event: str, details: str) -> None:
        """Append ``[timestamp] EVENT: details`` to the log."""
        _append(self.log_file, f"[{_rfc3339_now()}] {event}: {details}\n", "audit log")


class IntegrityChecker:
    """Records and verifies SHA-256 checksums of files."""

    def __init__(self, checksum_file: str | os.PathLike[str] | None = None) -> None:
        self.checksum_file = str(checksum_file) if checksum_file is not None else str(
            _claude_dir() / "integrity.sha256"
        )

    def calculate_checksum(self, file_path: str) -> str:
        """Base64 of the SHA-256 digest of the file's contents."""
        cleaned = _checked_path(file_path)
        try:
            data = Path(cleaned).read_bytes()
        except OSError as exc:
            raise SecurityError(f"failed to read file: {exc}") from exc
        return base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")

    def save_checksum(self, file_path: str, checksum: str) -> None:
        """Append ``path:checksum`` to the checksum file."""
        _append(self.checksum_file, f"{file_path}:{checksum}\n", "checksum file")

    def verify_integrity(self, file_path: str) -> None:
        """Raise ``SecurityError`` unless the file matches its recorded checksum."""
        try:
            current = self.calculate_checksum(file_path)
        except SecurityError as exc:
            raise SecurityError(f"failed to calculate current checksum: {exc}") from exc
        try:
            recorded = Path(self.checksum_file).read_text(encoding="utf-8")
        except OSError as exc:
            raise SecurityError(f"failed to read checksum file: {exc}") from exc

        for line in recorded.split("\n"):
            parts = line.split(":")
            if len(parts) != 2:
                continue
            path, checksum = parts
            if path == file_path:
                if checksum != current:
                    raise SecurityError(
                        f"integrity check failed: file {file_path} has been modified"
                    )
                return
        raise SecurityError(f"no checksum found for file: {file_path}")


class SecurityEnhancement:
    """AES-GCM encryption with a per-instance key, plus secure file deletion."""

    def __init__(
        self,
        encryption_key: bytes | None = None,
        audit_trail: AuditTrail | None = None,
        integrity_checker: IntegrityChecker | None = None,
    ) -> None:
        if encryption_key is None:
            seed = f"claude-auth-security-{time.time_ns()}".encode()
            encryption_key = hashlib.sha256(seed).digest()
        self.encryption_key = encryption_key
        try:
            self.audit_trail = audit_trail or AuditTrail()
        except SecurityError as exc:
            raise SecurityError(f"failed to create audit trail: {exc}") from exc
        try:
            self.integrity_checker = integrity_checker or IntegrityChecker()
        except SecurityError as exc:
            raise SecurityError(f"failed to create integrity checker: {exc}") from exc

    def _cipher(self) -> AESGCM:
        try:
            return AESGCM(self.encryption_key)
        except (ValueError, TypeError) as exc:
            raise SecurityError(f"failed to create cipher: {exc}") from exc

    def encrypt_data(self, data: bytes) -> bytes:
        """Return the random nonce followed by the sealed data."""
        cipher = self._cipher()
        nonce = os.urandom(NONCE_SIZE)
        return nonce + cipher.encrypt(nonce, bytes(data), None)

    def decrypt_data(self, ciphertext: bytes) -> bytes:
        """Open data produced by :meth:`encrypt_data`."""
        cipher = self._cipher()
        if len(ciphertext) < NONCE_SIZE:
            raise SecurityError("ciphertext too short")
        nonce, sealed = ciphertext[:NONCE_SIZE], ciphertext[NONCE_SIZE:]
        try:
            return cipher.decrypt(nonce, bytes(sealed), None)
        except InvalidTag as exc:
            raise SecurityError("failed to decrypt: message authentication failed") from exc

    def secure_delete(self, file_path: str) -> None:
        """Overwrite the file with random bytes three times, then remove it."""
        cleaned = _checked_path(file_path)
        try:
            fd = os.open(cleaned, os.O_WRONLY)
        except OSError as exc:
            raise SecurityError(f"failed to open file for secure delete: {exc}") from exc
        try:
            with os.fdopen(fd, "r+b" if False else "wb", closefd=True) as handle:
                size = os.fstat(handle.fileno()).st_size
                for _ in range(_OVERWRITE_PASSES):
                    handle.seek(0)
                    handle.write(os.urandom(size))
                    handle.flush()
                    os.fsync(handle.fileno())
        except OSError as exc:
            raise SecurityError(f"failed to overwrite file: {exc}") from exc

        try:
            os.remove(file_path)
        except OSError as exc:
            raise SecurityError(f"failed to remove file: {exc}") from exc
        logger.info("File securely deleted: %s", file_path)


__all__ = ["AuditTrail", "IntegrityChecker", "SecurityEnhancement", "SecurityError"]

if sys.version_info < (3, 10):  # pragma: no cover
    raise RuntimeError("Python 3.10 or newer is required")
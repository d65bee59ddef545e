"""
Credential manager for secure credential operations.

Resolves the opaque credential reference of a request to a Credential.
A reference names a JSON file in the credentials directory, stored either
plain ({"username", "password"}) or Fernet-encrypted under a key derived
from a master password.
"""

import base64
import hashlib
import json
import logging
import os
import secrets
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import SecretStr, ValidationError

from mssqladmin.domain.config import Credential

logger = logging.getLogger(__name__)

MASTER_PASSWORD_ENV = "MSSQLADMIN_MASTER_PASSWORD"


class CredentialManager:
    """
    Manager for secure credential operations.

    Uses PBKDF2 key derivation and Fernet symmetric encryption.
    """

    # Key derivation parameters
    SALT_LENGTH = 32
    ITERATIONS = 100000
    KEY_LENGTH = 32

    def __init__(self, credentials_dir: Path, master_password: Optional[str] = None):
        """
        Initialize the credential manager.

        Args:
            credentials_dir: Directory holding <ref>.json credential files
            master_password: Master password for encryption (falls back to
                the MSSQLADMIN_MASTER_PASSWORD environment variable)
        """
        self.credentials_dir = Path(credentials_dir)
        self.master_password = master_password or os.environ.get(MASTER_PASSWORD_ENV)
        self._encryption_key: Optional[bytes] = None
        self._salt: Optional[bytes] = None

    def _derive_key(self, password: str, salt: bytes) -> bytes:
        """Derive encryption key from password using PBKDF2."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_LENGTH,
            salt=salt,
            iterations=self.ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(password.encode()))

    def _get_or_create_salt(self) -> bytes:
        """Get existing salt or create a new one."""
        if self._salt is not None:
            return self._salt

        salt_file = self.credentials_dir / ".salt"
        if salt_file.exists():
            self._salt = salt_file.read_bytes()
            return self._salt

        self._salt = secrets.token_bytes(self.SALT_LENGTH)
        salt_file.parent.mkdir(parents=True, exist_ok=True)
        salt_file.write_bytes(self._salt)
        logger.info("Created new salt file")
        return self._salt

    def _get_encryption_key(self) -> bytes:
        """
        Get or create the encryption key.

        Raises:
            ValueError: If master password is not available
        """
        if self._encryption_key is not None:
            return self._encryption_key

        if not self.master_password:
            raise ValueError(
                f"Master password required for encrypted credentials (set {MASTER_PASSWORD_ENV})"
            )

        salt = self._get_or_create_salt()
        self._encryption_key = self._derive_key(self.master_password, salt)
        return self._encryption_key

    def encrypt_credential(self, credential: Credential) -> Dict[str, Any]:
        """Encrypt a credential for storage."""
        fernet = Fernet(self._get_encryption_key())
        payload = json.dumps(
            {"username": credential.username, "password": credential.get_password()}
        ).encode()
        return {
            "encrypted": True,
            "data": base64.b64encode(fernet.encrypt(payload)).decode(),
            "salt_hash": hashlib.sha256(self._get_or_create_salt()).hexdigest(),
        }

    def decrypt_credential(self, stored: Dict[str, Any]) -> Credential:
        """
        Decrypt a stored credential.

        Raises:
            ValueError: If decryption fails or data is invalid
        """
        try:
            if not stored.get("encrypted", False):
                return Credential(
                    username=stored["username"],
                    password=SecretStr(stored["password"]),
                )

            if "salt_hash" in stored:
                expected_hash = hashlib.sha256(self._get_or_create_salt()).hexdigest()
                if stored["salt_hash"] != expected_hash:
                    raise ValueError("Salt hash mismatch - credential may be corrupted")

            fernet = Fernet(self._get_encryption_key())
            decrypted = fernet.decrypt(base64.b64decode(stored["data"]))
            data = json.loads(decrypted.decode())
            return Credential(username=data["username"], password=SecretStr(data["password"]))
        except (KeyError, InvalidToken, ValidationError, json.JSONDecodeError) as e:
            logger.error("Failed to decrypt credential: %s", type(e).__name__)
            raise ValueError(f"Credential decryption failed: {type(e).__name__}") from e

    def save_credential(self, ref: str, credential: Credential, encrypt: bool = True) -> Path:
        """Store a credential under a reference name."""
        if encrypt:
            data = self.encrypt_credential(credential)
        else:
            data = {"username": credential.username, "password": credential.get_password()}
        path = self._path_for(ref)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.info("Saved credential '%s' (encrypted=%s)", ref, encrypt)
        return path

    def load_credential(self, ref: Optional[str]) -> Optional[Credential]:
        """
        Resolve a credential reference. None means integrated authentication.

        Raises:
            FileNotFoundError: unknown reference
            ValueError: unreadable credential file
        """
        if not ref:
            return None
        path = self._path_for(ref)
        if not path.exists():
            raise FileNotFoundError(f"Credential '{ref}' not found in {self.credentials_dir}")
        try:
            stored = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid credential file {path}: {e}") from e
        credential = self.decrypt_credential(stored)
        logger.debug("Loaded credential '%s' for %s", ref, credential.username)
        return credential

    def _path_for(self, ref: str) -> Path:
        if not ref or any(sep in ref for sep in ("/", "\\")) or ref.startswith("."):
            raise ValueError(f"Invalid credential reference: {ref!r}")
        return self.credentials_dir / f"{ref}.json"

"""
PSRemote Client - Resilient pywinrm Wrapper.

Tries every reasonable combination of transport and authentication
to establish a connection. Logs all attempts for debugging.

Transport Priority:
1. HTTPS (5986) with certificate validation
2. HTTPS (5986) without certificate validation
3. HTTP (5985)

Auth Priority:
1. Negotiate (auto-selects Kerberos or NTLM)
2. Kerberos
3. NTLM
4. Basic (only over HTTPS)
"""

from __future__ import annotations

import logging
import os
import socket
import subprocess
import tempfile
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import winrm  # pywinrm
from winrm.exceptions import WinRMOperationTimeoutError

logger = logging.getLogger(__name__)


class Transport(Enum):
    """WinRM transport protocols."""

    HTTPS = "https"
    HTTP = "http"


class AuthMethod(Enum):
    """WinRM authentication methods."""

    NEGOTIATE = "negotiate"
    KERBEROS = "kerberos"
    NTLM = "ntlm"
    BASIC = "basic"


LOCALHOST_NAMES = {"localhost", "127.0.0.1", "::1", ".", "(local)"}


@dataclass
class ConnectionConfig:
    """Configuration for PSRemote connection."""

    hostname: str
    username: str | None = None
    password: str | None = None
    port_http: int = 5985
    port_https: int = 5986
    operation_timeout_sec: int = 120

    # Retry settings
    max_retries_per_combo: int = 1

    # Allow falling back to unverified HTTPS and plain HTTP
    allow_insecure: bool = True


@dataclass
class PSRemoteResult:
    """Result from PSRemote operation."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    return_code: int = -1
    transport_used: str = ""
    auth_used: str = ""
    error: str = ""
    timed_out: bool = False
    attempts: list[dict[str, Any]] = field(default_factory=list)


def is_localhost(hostname: str) -> bool:
    """
    Detect if hostname is localhost.

    Matches: localhost, 127.0.0.1, ::1, ., (local), local machine name.
    """
    hostname = hostname.lower().strip()
    if hostname in LOCALHOST_NAMES:
        return True
    try:
        local_name = socket.gethostname().lower()
    except OSError:
        return False
    return hostname in (local_name, local_name.split(".")[0])


class PSRemoteClient:
    """
    PSRemote client using pywinrm.

    Tries every transport+auth combination until one works.
    Caches successful combination for future calls.
    """

    # Class-level cache of successful connections
    _connection_cache: dict[str, tuple[Transport, AuthMethod, bool]] = {}
    _cache_lock = threading.Lock()

    def __init__(self, config: ConnectionConfig) -> None:
        """Initialize with connection config."""
        self.config = config
        self._session: winrm.Session | None = None
        self._working_transport: Transport | None = None
        self._working_auth: AuthMethod | None = None
        self._is_localhost: bool = is_localhost(config.hostname)
        self.attempts: list[dict[str, Any]] = []

    @property
    def is_local(self) -> bool:
        return self._is_localhost

    def connect(self) -> bool:
        """
        Establish connection trying all combinations.

        For localhost, returns True immediately (no PSRemoting needed).
        Returns True if connection established, False otherwise.
        """
        if self._is_localhost:
            logger.info("Localhost mode: skipping PSRemoting, will use local PowerShell")
            return True

        cache_key = f"{self.config.hostname}:{self.config.username}"

        with self._cache_lock:
            cached = self._connection_cache.get(cache_key)
        if cached:
            transport, auth, verify_ssl = cached
            logger.info("Using cached connection: %s + %s", transport.value, auth.value)
            if self._try_connect(transport, auth, verify_ssl):
                return True
            with self._cache_lock:
                self._connection_cache.pop(cache_key, None)

        for transport, auth, verify_ssl in self._combinations():
            if self._try_connect(transport, auth, verify_ssl):
                with self._cache_lock:
                    self._connection_cache[cache_key] = (transport, auth, verify_ssl)
                if not verify_ssl and transport == Transport.HTTPS:
                    logger.warning(
                        "Connected with SSL verification DISABLED - not recommended for production"
                    )
                elif transport == Transport.HTTP:
                    logger.warning("Connected over HTTP - relying on message-level encryption")
                return True
            self.attempts.append(
                {"transport": transport.value, "auth": auth.value, "ssl": verify_ssl}
            )

        logger.error("All connection attempts failed for %s", self.config.hostname)
        return False

    def _combinations(self) -> list[tuple[Transport, AuthMethod, bool]]:
        secure_auths = [AuthMethod.NEGOTIATE, AuthMethod.KERBEROS, AuthMethod.NTLM]
        combos = [(Transport.HTTPS, auth, True) for auth in secure_auths]
        if self.config.allow_insecure:
            combos += [
                (Transport.HTTPS, auth, False) for auth in secure_auths + [AuthMethod.BASIC]
            ]
            # Never basic over plain HTTP
            combos += [(Transport.HTTP, auth, False) for auth in secure_auths]
        return combos

    def _try_connect(self, transport: Transport, auth: AuthMethod, verify_ssl: bool) -> bool:
        """Try a single transport+auth combination."""
        port = (
            self.config.port_https
            if transport == Transport.HTTPS
            else self.config.port_http
        )
        endpoint = f"{transport.value}://{self.config.hostname}:{port}/wsman"

        logger.debug("Trying: %s with %s (SSL verify: %s)", endpoint, auth.value, verify_ssl)

        for attempt in range(self.config.max_retries_per_combo):
            try:
                session = winrm.Session(
                    target=endpoint,
                    auth=(self.config.username, self.config.password),
                    transport=auth.value,
                    server_cert_validation="validate" if verify_ssl else "ignore",
                    operation_timeout_sec=self.config.operation_timeout_sec,
                    read_timeout_sec=self.config.operation_timeout_sec + 10,
                )

                # Test connection with simple command
                result = session.run_cmd("echo", ["OK"])

                if result.status_code == 0 and b"OK" in result.std_out:
                    logger.info("Connected: %s + %s", transport.value, auth.value)
                    self._session = session
                    self._working_transport = transport
                    self._working_auth = auth
                    return True

            except Exception as e:  # pylint: disable=broad-except
                logger.debug(
                    "Attempt %d failed: %s - %s",
                    attempt + 1,
                    type(e).__name__,
                    str(e)[:100],
                )

        return False

    def run_ps(self, script: str) -> PSRemoteResult:
        """
        Execute PowerShell script on remote host.

        For localhost, runs locally.

        Args:
            script: PowerShell script content

        Returns:
            PSRemoteResult with output and status
        """
        if self._is_localhost:
            return self._run_local_ps(script)

        if not self._session:
            if not self.connect():
                return PSRemoteResult(
                    success=False,
                    error="Failed to establish connection",
                    attempts=list(self.attempts),
                )

        transport = self._working_transport.value if self._working_transport else ""
        auth = self._working_auth.value if self._working_auth else ""
        try:
            result = self._session.run_ps(script)
        except (WinRMOperationTimeoutError, TimeoutError) as e:
            return PSRemoteResult(
                success=False,
                error=f"Operation timed out: {e}",
                timed_out=True,
                transport_used=transport,
                auth_used=auth,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.debug("PowerShell execution failed: %s", e, exc_info=True)
            return PSRemoteResult(
                success=False,
                error=str(e),
                transport_used=transport,
                auth_used=auth,
            )

        return PSRemoteResult(
            success=result.status_code == 0,
            stdout=result.std_out.decode("utf-8", errors="replace"),
            stderr=result.std_err.decode("utf-8", errors="replace"),
            return_code=result.status_code,
            transport_used=transport,
            auth_used=auth,
        )

    def _run_local_ps(self, script: str) -> PSRemoteResult:
        """
        Execute PowerShell script locally.

        Writes script to temp file and runs with ExecutionPolicy Bypass.
        """
        logger.debug("Running PowerShell locally (localhost bypass)")

        with tempfile.NamedTemporaryFile(
            mode="w", suffix=".ps1", delete=False, encoding="utf-8"
        ) as f:
            f.write(script)
            script_path = f.name

        cmd = [
            "powershell.exe",
            "-NoProfile",
            "-NonInteractive",
            "-ExecutionPolicy",
            "Bypass",
            "-File",
            script_path,
        ]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.config.operation_timeout_sec,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return PSRemoteResult(
                success=False,
                error=f"Script timed out after {self.config.operation_timeout_sec}s",
                timed_out=True,
                transport_used="local",
                auth_used="local",
            )
        except OSError as e:
            return PSRemoteResult(
                success=False,
                error=f"Cannot start PowerShell: {e}",
                transport_used="local",
                auth_used="local",
            )
        finally:
            try:
                os.unlink(script_path)
            except OSError:
                pass

        return PSRemoteResult(
            success=result.returncode == 0,
            stdout=result.stdout,
            stderr=result.stderr,
            return_code=result.returncode,
            transport_used="local",
            auth_used="local",
        )

    def close(self) -> None:
        """Close the session."""
        self._session = None

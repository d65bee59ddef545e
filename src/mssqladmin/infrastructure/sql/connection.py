"""
SQL Server connection module.

Handles:
- ODBC driver detection and fallback
- Connection string building
- Login and statement timeouts
- Translating pyodbc errors into the mssqladmin error taxonomy
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pyodbc

from mssqladmin.domain.config import AdminSettings, Credential
from mssqladmin.domain.errors import AdminError, TargetConnectionError
from mssqladmin.domain.models import Target

logger = logging.getLogger(__name__)

# Preferred drivers (newest first)
PREFERRED_DRIVERS = [
    "ODBC Driver 18 for SQL Server",
    "ODBC Driver 17 for SQL Server",
    "ODBC Driver 13 for SQL Server",
    "ODBC Driver 11 for SQL Server",
]

FALLBACK_DRIVERS = [
    "SQL Server Native Client 11.0",
    "SQL Server Native Client 10.0",
    "SQL Server",
]

# SQLSTATEs that mean the link, not the statement, failed
CONNECTION_SQLSTATES = {"08001", "08S01", "08004", "HYT00", "HYT01"}


def detect_odbc_driver() -> str:
    """
    Detect best available ODBC driver.

    Raises:
        TargetConnectionError: If no suitable driver found
    """
    drivers = pyodbc.drivers()
    logger.debug("Available ODBC drivers: %s", drivers)

    for driver in PREFERRED_DRIVERS:
        if driver in drivers:
            logger.debug("Using ODBC driver: %s", driver)
            return driver

    for driver in FALLBACK_DRIVERS:
        if driver in drivers:
            logger.warning("Using fallback ODBC driver: %s", driver)
            return driver

    raise TargetConnectionError(
        "No SQL Server ODBC driver found. Please install ODBC Driver 17 or 18."
    )


def build_connection_string(
    target: Target,
    settings: AdminSettings,
    credential: Credential | None,
    driver: str,
    database: str = "msdb",
) -> str:
    """Build ODBC connection string for the target."""
    parts = [
        f"DRIVER={{{driver}}}",
        f"SERVER={target.full_name}",
        f"DATABASE={database}",
        "APP=mssqladmin",
        "Encrypt=no",  # Disable encryption for compatibility
        "TrustServerCertificate=yes",
    ]

    if settings.uses_sql_auth:
        if credential is None:
            raise TargetConnectionError(
                "Username and password required for SQL authentication",
                target=target.full_name,
            )
        parts.append(f"UID={credential.username}")
        parts.append(f"PWD={{{credential.get_password().replace('}', '}}')}}}")
    else:
        parts.append("Trusted_Connection=yes")

    return ";".join(parts)


def sqlstate(error: pyodbc.Error) -> str:
    """SQLSTATE of a pyodbc error ('' if absent)."""
    if error.args and isinstance(error.args[0], str):
        return error.args[0]
    return ""


def translate_error(
    error: pyodbc.Error, target: Target, error_type: type[AdminError], action: str
) -> AdminError:
    """Map a pyodbc error to TargetConnectionError or the step's error type."""
    state = sqlstate(error)
    message = str(error.args[1]) if len(error.args) > 1 else str(error)
    if state in CONNECTION_SQLSTATES or isinstance(error, pyodbc.InterfaceError):
        return TargetConnectionError(f"{action}: [{state}] {message}", target=target.full_name)
    return error_type(f"{action}: [{state}] {message}", target=target.full_name)


@dataclass
class SqlSession:
    """Open ODBC connection to one target."""

    target: Target
    connection: Any

    def execute(
        self, sql: str, params: tuple = (), *, error_type: type[AdminError], action: str
    ) -> list[Any]:
        """
        Execute a statement and return all rows (empty list if no result set).

        Raises:
            TargetConnectionError: link failure or timeout
            error_type: any other statement failure
        """
        try:
            cursor = self.connection.cursor()
            try:
                cursor.execute(sql, params)
                rows = cursor.fetchall() if cursor.description else []
                # Drain trailing result sets so errors raised late surface here
                while cursor.nextset():
                    pass
                return rows
            finally:
                cursor.close()
        except pyodbc.Error as e:
            raise translate_error(e, self.target, error_type, action) from e

    def close(self) -> None:
        self.connection.close()


class OdbcConnectionProvider:
    """ConnectionProvider opening SqlSessions with pyodbc."""

    def __init__(self, settings: AdminSettings) -> None:
        self.settings = settings
        self._driver: str | None = None

    def connect(self, target: Target, credential: Credential | None) -> SqlSession:
        if self._driver is None:
            self._driver = detect_odbc_driver()
        conn_str = build_connection_string(target, self.settings, credential, self._driver)

        logger.debug("Connecting to %s (timeout=%ds)", target, self.settings.connect_timeout)
        try:
            connection = pyodbc.connect(
                conn_str, timeout=self.settings.connect_timeout, autocommit=True
            )
        except pyodbc.Error as e:
            message = str(e.args[1]) if len(e.args) > 1 else str(e)
            raise TargetConnectionError(
                f"Connection failed: {message}", target=target.full_name
            ) from e

        connection.timeout = self.settings.command_timeout
        logger.info("Connected to %s", target)
        return SqlSession(target=target, connection=connection)

"""
SQL Server (pyodbc) infrastructure: sessions and the agent job gateway.
"""

from mssqladmin.infrastructure.sql.agent_job_gateway import AgentJobGateway
from mssqladmin.infrastructure.sql.connection import (
    OdbcConnectionProvider,
    SqlSession,
    build_connection_string,
    detect_odbc_driver,
)

__all__ = [
    "AgentJobGateway",
    "OdbcConnectionProvider",
    "SqlSession",
    "build_connection_string",
    "detect_odbc_driver",
]

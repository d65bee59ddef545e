"""
Admin settings domain model.

This module defines the AdminSettings entity containing every setting that
controls how targets are reached and how mutations are applied.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mssqladmin.domain.enums import AuthType, IdempotencyPolicy


class AdminSettings(BaseModel):
    """
    Domain model for admin configuration.

    Values come from admin_config.json, then CLI overrides, then defaults.
    """

    auth_type: AuthType = Field(AuthType.WINDOWS, description="SQL authentication method", alias="auth")
    connect_timeout: int = Field(30, description="Seconds to wait for SQL login")
    command_timeout: int = Field(60, description="Seconds to wait for a single SQL statement")
    service_timeout: int = Field(120, description="Seconds to wait for remote PowerShell and service stop/start")
    winrm_port_http: int = Field(5985, description="WinRM HTTP port")
    winrm_port_https: int = Field(5986, description="WinRM HTTPS port")
    winrm_allow_insecure: bool = Field(
        True, description="Allow unverified HTTPS and HTTP with message encryption"
    )
    max_workers: int = Field(1, description="Targets processed in parallel")
    idempotency: IdempotencyPolicy = Field(
        IdempotencyPolicy.ALWAYS_APPLY,
        description="Whether to skip targets already at the desired state",
    )
    targets: List[str] = Field(default_factory=list, description="Default target identifiers")
    credentials_dir: str = Field("credentials", description="Directory holding credential files")
    credential_ref: Optional[str] = Field(None, description="Default credential reference")
    log_file: Optional[str] = Field(None, description="Optional log file path")

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("auth_type", mode="before")
    @classmethod
    def normalize_auth(cls, v):
        """Map legacy auth strings to enum."""
        if isinstance(v, str) and v.lower() == "integrated":
            return AuthType.WINDOWS
        return v

    @field_validator("connect_timeout", "command_timeout", "service_timeout", "max_workers")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Timeouts and worker counts must be positive."""
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("winrm_port_http", "winrm_port_https")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number."""
        if v < 1 or v > 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def uses_sql_auth(self) -> bool:
        return self.auth_type == AuthType.SQL

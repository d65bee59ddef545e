"""
Configuration infrastructure: settings repository and credential files.
"""

from .credential_manager import CredentialManager
from .repository import ConfigRepository, strip_json_comments

__all__ = ["ConfigRepository", "CredentialManager", "strip_json_comments"]

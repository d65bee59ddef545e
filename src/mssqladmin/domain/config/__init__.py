"""
Configuration domain package.
"""

from .credential import Credential
from .settings import AdminSettings

__all__ = ["AdminSettings", "Credential"]

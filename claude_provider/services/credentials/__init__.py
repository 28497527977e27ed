"""Credential storage and lifecycle management."""

from .manager import CredentialManager
from .store import CredentialStore, ReadWriteLock


__all__ = ["CredentialManager", "CredentialStore", "ReadWriteLock"]

"""
Build-time error classifications.

These are raised when the client is being wired together: a malformed
interface description or an invalid configuration. They indicate a
deployment problem, not a ledger outcome.
"""

from typing import Optional, Dict, Any


class BuildError(Exception):
    """Base class for errors raised while constructing client components."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class AbiBuildError(BuildError):
    """Malformed entry in a raw interface description."""

    def __init__(self, message: str, contract: Optional[str] = None,
                 entry: Optional[Dict[str, Any]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.contract = contract
        self.entry = entry


class AbiLookupError(BuildError, KeyError):
    """Requested function or event is not present in the ABI map."""

    def __init__(self, message: str, contract: Optional[str] = None,
                 name: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.contract = contract
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class ConfigurationError(BuildError):
    """Configuration failed validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []

"""
Backends that carry out identity operations.

A backend has one job: run a named operation (``user/login``,
``user/register``, ...) with some parameters and hand back the decoded
result. :class:`.RemoteBackend` sends a signed call to the UCenter service;
:class:`.DatabaseBackend` runs a small subset of operations directly
against a local database.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..exceptions import UnsupportedOperation


class Backend(ABC):
    """Executes identity operations."""

    @abstractmethod
    def execute(self, operation: str,
                params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Run ``operation`` with ``params`` and return the result."""

    def execute_raw(self, operation: str,
                    params: Optional[Dict[str, Any]] = None) -> str:
        """Run ``operation`` and return the response body undecoded."""
        raise UnsupportedOperation(
            f'{type(self).__name__} does not support raw responses'
        )

    def close(self) -> None:
        """Release any resources held by the backend."""


from .remote import RemoteBackend    # noqa: E402
from .database import DatabaseBackend    # noqa: E402

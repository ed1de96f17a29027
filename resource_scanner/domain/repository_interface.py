"""Scan state storage interface (port) for data persistence.

This is the port in hexagonal architecture that the infrastructure layer implements.
Both documents are always read and written whole.
"""
from abc import ABC, abstractmethod
from typing import Dict
from resource_scanner.domain.models import RepositoryRecord, ScanStatus


class IScanStateStorage(ABC):
    """Abstract interface for the persisted repository map and scan status."""

    @abstractmethod
    def load_repositories(self) -> Dict[str, RepositoryRecord]:
        """Load the repository map keyed by ``owner/name``.

        Returns an empty map when nothing has been stored yet.
        """
        pass

    @abstractmethod
    def load_scan_status(self) -> ScanStatus:
        """Load the scan status, or a fresh one when nothing has been stored yet."""
        pass

    @abstractmethod
    def save(self, repositories: Dict[str, RepositoryRecord], scan_status: ScanStatus) -> None:
        """Replace both persisted documents.

        Args:
            repositories: Complete repository map
            scan_status: Complete scan status
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any open connections."""
        pass

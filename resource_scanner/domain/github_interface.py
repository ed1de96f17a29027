"""GitHub API interface (port) for searching and inspecting repositories.

This is the anti-corruption layer that shields the domain from GitHub API specifics.
Implementations return ``None`` or an empty list for anything that does not
exist instead of raising.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from resource_scanner.domain.models import (
    Commit,
    Contributor,
    FileContent,
    Release,
    Repository,
)


class IGitHubClient(ABC):
    """Abstract interface for GitHub API operations."""

    @abstractmethod
    async def search_repositories(self, query: str, page_size: int) -> List[Repository]:
        """Search repositories.

        Args:
            query: Search string including qualifiers
            page_size: Maximum number of results to return

        Returns:
            Matching repositories, best match first
        """
        pass

    @abstractmethod
    async def get_contents(self, owner: str, name: str, path: str) -> Optional[FileContent]:
        """Fetch a file or directory at ``path`` on the default branch."""
        pass

    @abstractmethod
    async def get_releases(self, owner: str, name: str) -> List[Release]:
        """Fetch recent releases, newest first."""
        pass

    @abstractmethod
    async def get_commits(self, owner: str, name: str, since: datetime) -> List[Commit]:
        """Fetch default-branch commits made after ``since``."""
        pass

    @abstractmethod
    async def get_contributors(self, owner: str, name: str) -> List[Contributor]:
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections."""
        pass

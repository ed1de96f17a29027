"""Repository enrichment: auxiliary fetches plus scoring."""
import asyncio
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple
from resource_scanner.domain.errors import GitHubAuthenticationError
from resource_scanner.domain.github_interface import IGitHubClient
from resource_scanner.domain.models import (
    AdditionalData,
    Category,
    Repository,
    RepositoryRecord,
)
from resource_scanner.domain.scoring import QualityScorer, ScoringInputs


logger = logging.getLogger(__name__)

README_PATH = "README.md"
LICENSE_PATH = "LICENSE"
CONTRIBUTING_PATH = "CONTRIBUTING.md"

# Checked in order; the first one found is enough.
CI_PATHS = (
    ".github/workflows",
    ".travis.yml",
    ".circleci/config.yml",
    "azure-pipelines.yml",
    ".gitlab-ci.yml",
)

_GITHUB_URL = re.compile(r"github\.com/([^/]+)/([^/?#]+)")


def resolve_identity(repository: Repository) -> Optional[Tuple[str, str]]:
    """Resolve ``(owner, name)`` from the summary, falling back to its URL."""
    if repository.owner and repository.name:
        return repository.owner, repository.name
    match = _GITHUB_URL.search(repository.url or "")
    if not match:
        return None
    name = match.group(2)
    if name.endswith(".git"):
        name = name[:-4]
    return match.group(1), name


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RepositoryEnricher:
    """Turns a search result into a scored ``RepositoryRecord``.

    Auxiliary data is fetched concurrently (bounded by a semaphore) and each
    fetch fails on its own: a missing or failing README, release list, commit
    list, contributor list or file check just counts as absent.
    """

    def __init__(
        self,
        github_client: IGitHubClient,
        categories: Mapping[str, Category],
        scorer: Optional[QualityScorer] = None,
        recent_commits_days: int = 90,
        max_concurrent_fetches: int = 4,
        clock: Callable[[], datetime] = _utc_now
    ):
        """Initialize enricher.

        Args:
            github_client: GitHub API client implementation
            categories: Category configuration, used for display names
            scorer: Quality scorer (a default one is created when omitted)
            recent_commits_days: Window for counting recent commits
            max_concurrent_fetches: Upper bound on parallel auxiliary fetches
            clock: Returns the current time; injected by tests
        """
        self._github_client = github_client
        self._categories = categories
        self._scorer = scorer or QualityScorer()
        self._recent_commits_days = recent_commits_days
        self._max_concurrent_fetches = max(1, max_concurrent_fetches)
        self._clock = clock

    async def enrich(self, repository: Repository, category_key: str) -> Optional[RepositoryRecord]:
        """Fetch auxiliary data, score the repository and build its record.

        Args:
            repository: Repository summary from search
            category_key: Category the repository is being scanned for

        Returns:
            RepositoryRecord, or None when the repository cannot be enriched
        """
        identity = resolve_identity(repository)
        if identity is None:
            logger.warning(f"Cannot resolve owner/name for {repository.url!r}, skipping")
            return None
        owner, name = identity

        try:
            return await self._enrich(repository, owner, name, category_key)
        except GitHubAuthenticationError:
            raise
        except Exception as e:
            logger.error(f"Error enriching {owner}/{name}: {e}")
            return None

    async def _enrich(
        self,
        repository: Repository,
        owner: str,
        name: str,
        category_key: str
    ) -> RepositoryRecord:
        logger.info(f"Enriching {owner}/{name}")
        now = self._clock()
        since = now - timedelta(days=self._recent_commits_days)
        semaphore = asyncio.Semaphore(self._max_concurrent_fetches)

        async def bounded(fetch: Callable[[], Awaitable[Any]]) -> Any:
            async with semaphore:
                return await fetch()

        fetches = {
            "readme": lambda: self._github_client.get_contents(owner, name, README_PATH),
            "releases": lambda: self._github_client.get_releases(owner, name),
            "commits": lambda: self._github_client.get_commits(owner, name, since),
            "contributors": lambda: self._github_client.get_contributors(owner, name),
            "license": lambda: self._github_client.get_contents(owner, name, LICENSE_PATH),
            "contributing": lambda: self._github_client.get_contents(owner, name, CONTRIBUTING_PATH),
            "ci": lambda: self._has_ci(owner, name),
        }
        results = await asyncio.gather(
            *(bounded(fetch) for fetch in fetches.values()),
            return_exceptions=True
        )
        data = {
            label: self._settle(f"{owner}/{name}", label, result)
            for label, result in zip(fetches, results)
        }

        readme = data["readme"]
        releases = list(data["releases"] or [])
        commits = data["commits"] or []
        contributors = data["contributors"] or []
        has_license = data["license"] is not None or repository.license is not None
        has_contributing = data["contributing"] is not None
        has_ci = bool(data["ci"])

        quality_score = self._scorer.score(
            repository,
            ScoringInputs(
                readme=readme.text if readme else None,
                releases=releases,
                has_license=has_license,
                has_contributing=has_contributing,
                has_wiki=repository.has_wiki,
                has_ci=has_ci,
            ),
            now=now
        )

        category = self._categories.get(category_key)
        return RepositoryRecord(
            repository=repository,
            category=category_key,
            category_name=category.name if category else category_key,
            quality_score=quality_score,
            additional_data=AdditionalData(
                recent_commits=len(commits),
                total_releases=len(releases),
                contributors=len(contributors),
                has_license=has_license,
                has_contributing=has_contributing,
                has_ci=has_ci,
                last_release=releases[0] if releases else None,
                readme_length=readme.length if readme else 0,
            ),
            scanned_at=now
        )

    def _settle(self, full_name: str, label: str, result: Any) -> Any:
        """Unwrap one gathered result, turning failures into absent data."""
        if isinstance(result, GitHubAuthenticationError):
            raise result
        if isinstance(result, Exception):
            logger.warning(f"Could not fetch {label} for {full_name}: {result}")
            return None
        if isinstance(result, BaseException):
            raise result
        return result

    async def _has_ci(self, owner: str, name: str) -> bool:
        for path in CI_PATHS:
            try:
                content = await self._github_client.get_contents(owner, name, path)
            except GitHubAuthenticationError:
                raise
            except Exception as e:
                logger.debug(f"CI check of {path} failed for {owner}/{name}: {e}")
                continue
            if content is not None:
                return True
        return False

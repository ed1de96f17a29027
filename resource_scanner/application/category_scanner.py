"""Bounded search/enrich loop for a single category."""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Set
from resource_scanner.application.enricher import RepositoryEnricher
from resource_scanner.domain.errors import GitHubAuthenticationError
from resource_scanner.domain.github_interface import IGitHubClient
from resource_scanner.domain.models import (
    Category,
    CategoryScanResult,
    RepositoryRecord,
    ScanLimits,
)
from resource_scanner.domain.search_query import build_search_query, subtract_months


logger = logging.getLogger(__name__)


class CategoryScanExecutor:
    """Scans one category: search terms in order, candidates enriched in order.

    The scan ends when the terms run out, the per-category cap is reached or
    the wall clock timeout passes. The timeout is checked between terms and
    between candidates; an enrichment already running is allowed to finish.
    A failing search term is logged and skipped. Only authentication
    failures escape, everything else yields a (possibly partial) result.
    """

    def __init__(
        self,
        github_client: IGitHubClient,
        enricher: RepositoryEnricher,
        limits: ScanLimits,
        monotonic: Callable[[], float] = time.monotonic,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        """Initialize executor.

        Args:
            github_client: GitHub API client implementation
            enricher: Repository enricher
            limits: Caps and timeout for a category scan
            monotonic: Elapsed time source; injected by tests
            clock: Wall clock used for the recent-push filter
        """
        self._github_client = github_client
        self._enricher = enricher
        self._limits = limits
        self._monotonic = monotonic
        self._clock = clock

    def build_query(self, category: Category, term: str) -> str:
        return build_search_query(
            [term],
            languages=category.languages,
            min_stars=self._limits.min_stars,
            pushed_after=subtract_months(self._clock(), self._limits.max_age_months)
        )

    async def scan_category(self, category: Category) -> CategoryScanResult:
        """Scan a category.

        Args:
            category: Category to scan

        Returns:
            CategoryScanResult with the records found, in discovery order
        """
        limits = self._limits
        logger.info(f"Scanning category: {category.name}")
        logger.info(f"Search terms: {', '.join(category.search_terms)}")

        start = self._monotonic()
        repositories: List[RepositoryRecord] = []
        seen: Set[str] = set()
        terms_searched = 0
        terms_failed = 0
        timed_out = False

        def elapsed() -> float:
            return self._monotonic() - start

        def cap_reached() -> bool:
            return len(repositories) >= limits.max_repos_per_category

        for term in category.search_terms:
            if elapsed() > limits.timeout_seconds:
                logger.warning(f"Timeout reached for {category.key}, stopping search")
                timed_out = True
                break
            if cap_reached():
                break

            logger.info(f"Searching: {term!r}")
            terms_searched += 1
            try:
                candidates = await self._github_client.search_repositories(
                    self.build_query(category, term),
                    limits.max_repos_per_search
                )
            except GitHubAuthenticationError:
                raise
            except Exception as e:
                logger.error(f"Error searching {term!r}: {e}")
                terms_failed += 1
                continue

            for candidate in candidates[:limits.max_repos_per_search]:
                if cap_reached():
                    logger.info(f"Reached category limit ({limits.max_repos_per_category})")
                    break
                if elapsed() > limits.timeout_seconds:
                    timed_out = True
                    break
                if candidate.full_name in seen:
                    continue
                seen.add(candidate.full_name)

                record = await self._enricher.enrich(candidate, category.key)
                if record is not None:
                    repositories.append(record)
                    logger.info(
                        f"Added {record.id} ({record.quality_score.total}/100, "
                        f"grade {record.quality_score.grade})"
                    )

            if timed_out:
                logger.warning(f"Timeout reached for {category.key}, stopping search")
                break

        duration = elapsed()
        logger.info(
            f"Category scan completed in {duration / 60:.1f} minutes: "
            f"{len(repositories)} repositories for {category.name}"
        )

        return CategoryScanResult(
            category=category.key,
            repositories=tuple(repositories),
            terms_searched=terms_searched,
            terms_failed=terms_failed,
            timed_out=timed_out,
            cap_reached=cap_reached(),
            duration_seconds=duration
        )

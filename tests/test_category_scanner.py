"""Tests for the bounded category scan loop."""
from unittest.mock import AsyncMock, MagicMock
import pytest
from resource_scanner.application.category_scanner import CategoryScanExecutor
from resource_scanner.domain.errors import GitHubAuthenticationError
from resource_scanner.domain.models import Category, ScanLimits
from factories import NOW, make_record, make_repository


CATEGORY = Category(
    key="web",
    name="Web",
    search_terms=("selenium", "playwright", "cypress"),
    languages=("Python",),
)


class FakeTimer:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_enricher(timer=None, seconds_per_repo=0.0):
    enricher = MagicMock()

    async def enrich(repository, category_key):
        if timer is not None:
            timer.now += seconds_per_repo
        return make_record(repository.full_name, category_key)

    enricher.enrich = AsyncMock(side_effect=enrich)
    return enricher


def make_github(*pages):
    github = MagicMock()
    github.search_repositories = AsyncMock(side_effect=list(pages))
    return github


def repos(*names):
    return [make_repository(name) for name in names]


def make_executor(github, enricher, timer=None, **limits):
    return CategoryScanExecutor(
        github,
        enricher,
        ScanLimits(**limits),
        monotonic=timer or FakeTimer(),
        clock=lambda: NOW
    )


async def test_category_cap_fills_from_terms_in_order():
    """Candidates are taken term by term until the category cap is reached."""
    github = make_github(repos("a/1", "a/2", "a/3"), repos("b/1", "b/2", "b/3"))
    category = Category(key="web", name="Web", search_terms=("one", "two"))
    executor = make_executor(
        github, make_enricher(), max_repos_per_search=3, max_repos_per_category=5
    )

    result = await executor.scan_category(category)

    assert [record.id for record in result.repositories] == ["a/1", "a/2", "a/3", "b/1", "b/2"]
    assert result.cap_reached is True
    assert github.search_repositories.await_count == 2


async def test_never_takes_more_than_per_search_cap():
    """Only the first candidates of each search are considered."""
    github = make_github(repos(*[f"a/{i}" for i in range(10)]), [], [])
    enricher = make_enricher()
    executor = make_executor(github, enricher, max_repos_per_search=3, max_repos_per_category=15)

    result = await executor.scan_category(CATEGORY)

    assert len(result.repositories) == 3
    assert enricher.enrich.await_count == 3
    assert github.search_repositories.await_args_list[0].args[1] == 3


async def test_duplicates_within_a_run_are_enriched_once():
    """A repository returned by several terms is enriched only once."""
    github = make_github(repos("a/1", "a/2"), repos("a/2", "a/3"), repos("a/1"))
    enricher = make_enricher()
    executor = make_executor(github, enricher)

    result = await executor.scan_category(CATEGORY)

    assert [record.id for record in result.repositories] == ["a/1", "a/2", "a/3"]
    assert enricher.enrich.await_count == 3


async def test_failed_search_term_is_skipped():
    """A failing term is recorded and the remaining terms still run."""
    github = make_github(RuntimeError("boom"), repos("b/1"), repos("c/1"))
    executor = make_executor(github, make_enricher())

    result = await executor.scan_category(CATEGORY)

    assert [record.id for record in result.repositories] == ["b/1", "c/1"]
    assert result.terms_failed == 1
    assert result.terms_searched == 3


async def test_all_terms_failing_yields_empty_result():
    """When every search fails the category scan returns no repositories."""
    github = make_github(RuntimeError("a"), RuntimeError("b"), RuntimeError("c"))
    executor = make_executor(github, make_enricher())

    result = await executor.scan_category(CATEGORY)

    assert result.repositories == ()
    assert result.terms_failed == 3


async def test_dropped_candidates_do_not_count():
    """Candidates that fail enrichment do not use up the category cap."""
    github = make_github(repos("a/1", "a/2"), [], [])
    enricher = MagicMock()
    enricher.enrich = AsyncMock(side_effect=[None, make_record("a/2", "web")])
    executor = make_executor(github, enricher)

    result = await executor.scan_category(CATEGORY)

    assert [record.id for record in result.repositories] == ["a/2"]


async def test_timeout_stops_further_search_terms():
    """No new term is searched once the time limit has passed."""
    timer = FakeTimer()
    github = make_github(repos("a/1"), repos("b/1"), repos("c/1"))
    executor = make_executor(
        github, make_enricher(timer, seconds_per_repo=40), timer, timeout_seconds=60
    )

    result = await executor.scan_category(CATEGORY)

    assert [record.id for record in result.repositories] == ["a/1", "b/1"]
    assert result.timed_out is True
    assert github.search_repositories.await_count == 2


async def test_timeout_checked_between_candidates():
    """The time limit also stops enrichment partway through a term."""
    timer = FakeTimer()
    github = make_github(repos("a/1", "a/2", "a/3"), repos("b/1"), repos("c/1"))
    executor = make_executor(
        github, make_enricher(timer, seconds_per_repo=40), timer, timeout_seconds=60
    )

    result = await executor.scan_category(CATEGORY)

    assert [record.id for record in result.repositories] == ["a/1", "a/2"]
    assert result.timed_out is True
    assert github.search_repositories.await_count == 1


async def test_authentication_failure_propagates():
    """Authentication errors abort the scan instead of being skipped."""
    github = make_github(GitHubAuthenticationError("bad credentials"))
    executor = make_executor(github, make_enricher())

    with pytest.raises(GitHubAuthenticationError):
        await executor.scan_category(CATEGORY)


def test_query_carries_filters():
    """Category queries include the star, recency and archive filters."""
    executor = make_executor(make_github(), make_enricher(), min_stars=25, max_age_months=18)

    query = executor.build_query(CATEGORY, "selenium")

    assert query.startswith("selenium ")
    assert "language:Python" in query
    assert "stars:>=25" in query
    assert "pushed:>2022-12-01" in query
    assert "archived:false" in query
    assert "fork:false" in query

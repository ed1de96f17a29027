"""Tests for repository enrichment."""
import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
import pytest
from resource_scanner.application.enricher import CI_PATHS, RepositoryEnricher, resolve_identity
from resource_scanner.domain.errors import GitHubAuthenticationError
from resource_scanner.domain.models import Commit, Contributor, FileContent, Release, Repository
from factories import CATEGORIES, NOW, make_repository


README = "# Tool\n\n```bash\npip install tool\n```\n" + "x" * 600


def make_github(files=None, releases=None, commits=None, contributors=None):
    """GitHub double serving ``files`` by path; other paths do not exist."""
    files = {} if files is None else files

    async def get_contents(owner, name, path):
        value = files.get(path)
        if isinstance(value, Exception):
            raise value
        return value

    github = MagicMock()
    github.get_contents = AsyncMock(side_effect=get_contents)
    github.get_releases = AsyncMock(return_value=releases or [])
    github.get_commits = AsyncMock(return_value=commits or [])
    github.get_contributors = AsyncMock(return_value=contributors or [])
    return github


def make_enricher(github):
    return RepositoryEnricher(github, CATEGORIES, clock=lambda: NOW)


async def test_enrich_builds_scored_record():
    """Enrichment gathers auxiliary data and scores the repository."""
    release = Release(tag_name="v2.0", published_at=NOW - timedelta(days=5))
    github = make_github(
        files={
            "README.md": FileContent(path="README.md", text=README),
            "LICENSE": FileContent(path="LICENSE", text="MIT"),
            ".travis.yml": FileContent(path=".travis.yml", text="language: python"),
        },
        releases=[release],
        commits=[Commit(sha="abc"), Commit(sha="def")],
        contributors=[Contributor(login="octocat", contributions=3)],
    )
    repo = make_repository("octo/tool", has_wiki=True)

    record = await make_enricher(github).enrich(repo, "web")

    assert record.id == "octo/tool"
    assert record.category == "web"
    assert record.category_name == "Web"
    assert record.scanned_at == NOW
    data = record.additional_data
    assert data.recent_commits == 2
    assert data.total_releases == 1
    assert data.contributors == 1
    assert data.has_license is True
    assert data.has_contributing is False
    assert data.has_ci is True
    assert data.last_release == release
    assert data.readme_length == len(README)
    assert record.quality_score.documentation == 5 + 2 + 2 + 5
    github.get_commits.assert_awaited_once_with("octo", "tool", NOW - timedelta(days=90))


async def test_ci_detection_stops_at_first_match():
    """CI detection stops probing once a configuration is found."""
    github = make_github(files={".github/workflows": FileContent(path=".github/workflows", is_directory=True)})

    record = await make_enricher(github).enrich(make_repository(), "web")

    checked = [call.args[2] for call in github.get_contents.await_args_list]
    assert record.additional_data.has_ci is True
    assert ".github/workflows" in checked
    assert not set(CI_PATHS[1:]) & set(checked)


async def test_auxiliary_failures_count_as_absent():
    """A failed auxiliary fetch is treated as missing data."""
    github = make_github(files={"README.md": RuntimeError("timeout")})
    github.get_releases = AsyncMock(side_effect=RuntimeError("502"))
    github.get_contributors = AsyncMock(side_effect=RuntimeError("boom"))

    record = await make_enricher(github).enrich(make_repository(), "web")

    assert record is not None
    assert record.additional_data.readme_length == 0
    assert record.additional_data.total_releases == 0
    assert record.additional_data.contributors == 0
    assert record.quality_score.maintenance == 0


async def test_license_from_metadata_counts():
    """A license detected by GitHub counts without a LICENSE file."""
    record = await make_enricher(make_github()).enrich(make_repository(license="MIT"), "web")

    assert record.additional_data.has_license is True
    assert record.quality_score.community >= 8


async def test_authentication_failure_propagates():
    """Authentication errors are raised instead of dropping the repository."""
    github = make_github()
    github.get_releases = AsyncMock(side_effect=GitHubAuthenticationError("bad credentials"))

    with pytest.raises(GitHubAuthenticationError):
        await make_enricher(github).enrich(make_repository(), "web")


async def test_unresolvable_repository_is_dropped():
    """Repositories without a usable owner and name are skipped."""
    github = make_github()
    repo = Repository(owner="", name="", url="https://example.com/not-github")

    assert await make_enricher(github).enrich(repo, "web") is None
    github.get_releases.assert_not_awaited()


async def test_enrichment_is_idempotent():
    """Enriching the same data twice gives equal records."""
    github = make_github(
        files={"README.md": FileContent(path="README.md", text=README)},
        releases=[Release(tag_name="v1", published_at=NOW - timedelta(days=40))],
    )
    enricher = make_enricher(github)
    repo = make_repository(stargazers_count=420, topics=("qa",))

    first = await enricher.enrich(repo, "api")
    second = await enricher.enrich(repo, "api")

    assert first.quality_score == second.quality_score
    assert first == second


def test_resolve_identity_falls_back_to_url():
    """Owner and name are read from the URL when missing."""
    repo = Repository(owner="", name="", url="https://github.com/octo/tool.git")

    assert resolve_identity(repo) == ("octo", "tool")
    assert resolve_identity(make_repository("a/b")) == ("a", "b")


async def test_auxiliary_fetches_respect_concurrency_limit():
    """No more than ``max_concurrent_fetches`` requests are in flight at once."""
    gate = asyncio.Event()
    in_flight = 0
    peak = 0
    files = {
        "README.md": FileContent(path="README.md", text=README),
        "LICENSE": FileContent(path="LICENSE", text="MIT"),
        "CONTRIBUTING.md": FileContent(path="CONTRIBUTING.md", text="PRs welcome"),
        ".github/workflows": FileContent(path=".github/workflows", is_directory=True),
    }

    def gated(result):
        async def fetch(*args):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            try:
                await gate.wait()
            finally:
                in_flight -= 1
            return result(*args)
        return fetch

    github = MagicMock()
    github.get_contents = AsyncMock(side_effect=gated(lambda owner, name, path: files.get(path)))
    github.get_releases = AsyncMock(side_effect=gated(
        lambda owner, name: [Release(tag_name="v1", published_at=NOW - timedelta(days=3))]
    ))
    github.get_commits = AsyncMock(side_effect=gated(lambda owner, name, since: [Commit(sha="a")]))
    github.get_contributors = AsyncMock(side_effect=gated(
        lambda owner, name: [Contributor(login="octocat", contributions=1)]
    ))
    enricher = RepositoryEnricher(github, CATEGORIES, max_concurrent_fetches=2, clock=lambda: NOW)

    task = asyncio.create_task(enricher.enrich(make_repository("octo/tool"), "web"))
    for _ in range(20):
        await asyncio.sleep(0)
    assert in_flight == 2
    gate.set()
    record = await task

    assert peak == 2
    data = record.additional_data
    assert data.readme_length == len(README)
    assert data.total_releases == 1
    assert data.recent_commits == 1
    assert data.contributors == 1
    assert data.has_license is True
    assert data.has_contributing is True
    assert data.has_ci is True

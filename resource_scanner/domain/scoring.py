"""Deterministic multi-factor quality scoring.

Six sub-scores add up to at most 100 points:

    popularity     25   stars (20) + forks (5)
    activity       20   last push (15) + last release (5)
    documentation  20   README (15) + wiki (5)
    community      15   license (8) + contributing guide (4) + issues (3)
    maintenance    10   release count (5) + release regularity (3)
    code_quality   10   topics (3) + CI (4) + not archived (3)
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence
from resource_scanner.domain.models import Release, Repository, QualityScore


GRADE_THRESHOLDS = (
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
)


@dataclass(frozen=True)
class ScoringInputs:
    """Enrichment data consumed by the scorer. Every field may be absent."""
    readme: Optional[str] = None
    releases: Optional[Sequence[Release]] = None
    has_license: bool = False
    has_contributing: bool = False
    has_wiki: bool = False
    has_ci: bool = False


def calculate_grade(total: float) -> str:
    """Map a total score to its letter grade (thresholds are inclusive)."""
    for threshold, grade in GRADE_THRESHOLDS:
        if total >= threshold:
            return grade
    return "F"


def _days_between(later: datetime, earlier: datetime) -> int:
    # Whole days, truncated toward zero.
    return int((later - earlier).total_seconds() / 86400)


class QualityScorer:
    """Computes a ``QualityScore`` from repository metadata and enrichment data.

    The scorer holds no state; ``now`` is taken from the call so that scoring
    the same inputs at the same instant always gives the same result.
    """

    def score(
        self,
        repository: Repository,
        inputs: Optional[ScoringInputs] = None,
        now: Optional[datetime] = None
    ) -> QualityScore:
        """Score a repository.

        Args:
            repository: Repository metadata snapshot
            inputs: Enrichment data; missing pieces contribute zero points
            now: Reference time for recency checks (defaults to current UTC time)

        Returns:
            QualityScore with breakdown, total and grade
        """
        inputs = inputs or ScoringInputs()
        now = now or datetime.now(timezone.utc)
        releases = list(inputs.releases or [])

        popularity = self.popularity_score(repository)
        activity = self.activity_score(repository, releases, now)
        documentation = self.documentation_score(inputs.readme, inputs.has_wiki)
        community = self.community_score(
            repository, inputs.has_license, inputs.has_contributing
        )
        maintenance = self.maintenance_score(releases)
        code_quality = self.code_quality_score(repository, inputs.has_ci)

        total = popularity + activity + documentation + community + maintenance + code_quality

        return QualityScore(
            popularity=popularity,
            activity=activity,
            documentation=documentation,
            community=community,
            maintenance=maintenance,
            code_quality=code_quality,
            total=total,
            grade=calculate_grade(total)
        )

    def popularity_score(self, repository: Repository) -> float:
        star_score = min(max(repository.stargazers_count, 0) / 1000 * 10, 20)
        fork_score = min(max(repository.forks_count, 0) / 200 * 5, 5)
        return round(star_score + fork_score, 2)

    def activity_score(
        self,
        repository: Repository,
        releases: Sequence[Release],
        now: datetime
    ) -> int:
        push_score = 0
        if repository.pushed_at is not None:
            days_since_push = _days_between(now, repository.pushed_at)
            if days_since_push <= 7:
                push_score = 15
            elif days_since_push <= 30:
                push_score = 12
            elif days_since_push <= 90:
                push_score = 8
            elif days_since_push <= 180:
                push_score = 4

        release_score = 0
        latest = releases[0].timestamp if releases else None
        if latest is not None:
            days_since_release = _days_between(now, latest)
            if days_since_release <= 90:
                release_score = 5
            elif days_since_release <= 180:
                release_score = 3
            elif days_since_release <= 365:
                release_score = 1

        return push_score + release_score

    def documentation_score(self, readme: Optional[str], has_wiki: bool) -> int:
        readme_score = 0
        if readme:
            length = len(readme)
            if length > 500:
                readme_score += 5
            if length > 2000:
                readme_score += 3
            if length > 5000:
                readme_score += 2

            if "# " in readme:
                readme_score += 2
            if "```" in readme:
                readme_score += 2
            if "![" in readme:
                readme_score += 1

        wiki_score = 5 if has_wiki else 0
        return min(readme_score, 15) + wiki_score

    def community_score(
        self,
        repository: Repository,
        has_license: bool,
        has_contributing: bool
    ) -> int:
        score = 8 if has_license else 0
        if has_contributing:
            score += 4
        if 0 < repository.open_issues_count < 100:
            score += 2
        if repository.has_issues:
            score += 1
        return score

    def maintenance_score(self, releases: Sequence[Release]) -> int:
        """Release count (up to 5) plus a bonus for a regular release cadence.

        The cadence is the average gap between the five most recent releases
        and only counts once at least three releases exist.
        """
        if not releases:
            return 0

        score = min(len(releases), 5)

        if len(releases) >= 3:
            stamps = [r.timestamp for r in releases[:5] if r.timestamp is not None]
            gaps = [
                _days_between(newer, older)
                for newer, older in zip(stamps, stamps[1:])
            ]
            if gaps:
                average_gap = sum(gaps) / len(gaps)
                if average_gap <= 90:
                    score += 3
                elif average_gap <= 180:
                    score += 2
                else:
                    score += 1

        return min(score, 10)

    def code_quality_score(self, repository: Repository, has_ci: bool) -> int:
        score = min(len(repository.topics), 3)
        if has_ci:
            score += 4
        if not repository.archived:
            score += 3
        return score

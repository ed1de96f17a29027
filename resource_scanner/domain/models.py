"""Domain models representing core business entities.

All entities are frozen dataclasses. Anything that has to survive between
invocations knows how to turn itself into a JSON-compatible dict and back.
"""
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (GitHub style ``Z`` suffix accepted).

    Naive values are assumed to be UTC.
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


@dataclass(frozen=True)
class Repository:
    """Immutable snapshot of a GitHub repository as returned by search."""
    owner: str
    name: str
    url: str = ""
    description: Optional[str] = None
    homepage: Optional[str] = None
    language: Optional[str] = None
    stargazers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None
    topics: Tuple[str, ...] = ()
    license: Optional[str] = None
    archived: bool = False
    fork: bool = False
    has_wiki: bool = False
    has_issues: bool = False

    @property
    def full_name(self) -> str:
        """Returns the full repository name (owner/name)."""
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "full_name": self.full_name,
            "url": self.url,
            "description": self.description,
            "homepage": self.homepage,
            "language": self.language,
            "stargazers_count": self.stargazers_count,
            "forks_count": self.forks_count,
            "open_issues_count": self.open_issues_count,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "pushed_at": format_timestamp(self.pushed_at),
            "topics": list(self.topics),
            "license": self.license,
            "archived": self.archived,
            "fork": self.fork,
            "has_wiki": self.has_wiki,
            "has_issues": self.has_issues,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Repository':
        return cls(
            owner=data["owner"],
            name=data["name"],
            url=data.get("url", ""),
            description=data.get("description"),
            homepage=data.get("homepage"),
            language=data.get("language"),
            stargazers_count=data.get("stargazers_count", 0),
            forks_count=data.get("forks_count", 0),
            open_issues_count=data.get("open_issues_count", 0),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            pushed_at=parse_timestamp(data.get("pushed_at")),
            topics=tuple(data.get("topics") or ()),
            license=data.get("license"),
            archived=data.get("archived", False),
            fork=data.get("fork", False),
            has_wiki=data.get("has_wiki", False),
            has_issues=data.get("has_issues", False),
        )


@dataclass(frozen=True)
class Release:
    """A published release of a repository."""
    tag_name: str
    name: Optional[str] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def timestamp(self) -> Optional[datetime]:
        """Publication time, falling back to creation time for drafts."""
        return self.published_at or self.created_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag_name": self.tag_name,
            "name": self.name,
            "published_at": format_timestamp(self.published_at),
            "created_at": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Release':
        return cls(
            tag_name=data.get("tag_name", ""),
            name=data.get("name"),
            published_at=parse_timestamp(data.get("published_at")),
            created_at=parse_timestamp(data.get("created_at")),
        )


@dataclass(frozen=True)
class Commit:
    sha: str
    committed_at: Optional[datetime] = None


@dataclass(frozen=True)
class Contributor:
    login: str
    contributions: int = 0


@dataclass(frozen=True)
class FileContent:
    """Content of a path inside a repository.

    Directories (e.g. ``.github/workflows``) carry no text.
    """
    path: str
    text: Optional[str] = None
    is_directory: bool = False

    @property
    def length(self) -> int:
        return len(self.text) if self.text else 0


@dataclass(frozen=True)
class QualityScore:
    """Composite quality score with its six sub-scores.

    ``total`` is always the sum of the sub-scores and ``grade`` is derived
    from ``total``; use ``QualityScorer`` to build instances.
    """
    popularity: float
    activity: int
    documentation: int
    community: int
    maintenance: int
    code_quality: int
    total: float
    grade: str
    max_points: int = 100

    MAX_POPULARITY = 25
    MAX_ACTIVITY = 20
    MAX_DOCUMENTATION = 20
    MAX_COMMUNITY = 15
    MAX_MAINTENANCE = 10
    MAX_CODE_QUALITY = 10

    @property
    def breakdown(self) -> Dict[str, float]:
        return {
            "popularity": self.popularity,
            "activity": self.activity,
            "documentation": self.documentation,
            "community": self.community,
            "maintenance": self.maintenance,
            "code_quality": self.code_quality,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "grade": self.grade,
            "breakdown": self.breakdown,
            "max_points": self.max_points,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QualityScore':
        breakdown = data.get("breakdown", {})
        return cls(
            popularity=breakdown.get("popularity", 0),
            activity=breakdown.get("activity", 0),
            documentation=breakdown.get("documentation", 0),
            community=breakdown.get("community", 0),
            maintenance=breakdown.get("maintenance", 0),
            code_quality=breakdown.get("code_quality", 0),
            total=data.get("total", 0),
            grade=data.get("grade", "F"),
            max_points=data.get("max_points", 100),
        )


@dataclass(frozen=True)
class AdditionalData:
    """Auxiliary facts gathered while enriching a repository."""
    recent_commits: int = 0
    total_releases: int = 0
    contributors: int = 0
    has_license: bool = False
    has_contributing: bool = False
    has_ci: bool = False
    last_release: Optional[Release] = None
    readme_length: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recent_commits": self.recent_commits,
            "total_releases": self.total_releases,
            "contributors": self.contributors,
            "has_license": self.has_license,
            "has_contributing": self.has_contributing,
            "has_ci": self.has_ci,
            "last_release": self.last_release.to_dict() if self.last_release else None,
            "readme_length": self.readme_length,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AdditionalData':
        last_release = data.get("last_release")
        return cls(
            recent_commits=data.get("recent_commits", 0),
            total_releases=data.get("total_releases", 0),
            contributors=data.get("contributors", 0),
            has_license=data.get("has_license", False),
            has_contributing=data.get("has_contributing", False),
            has_ci=data.get("has_ci", False),
            last_release=Release.from_dict(last_release) if last_release else None,
            readme_length=data.get("readme_length", 0),
        )


@dataclass(frozen=True)
class RepositoryRecord:
    """An enriched, scored repository assigned to one category."""
    repository: Repository
    category: str
    category_name: str
    quality_score: QualityScore
    additional_data: AdditionalData
    scanned_at: datetime

    @property
    def id(self) -> str:
        """Stable identifier used as the repository map key."""
        return self.repository.full_name

    def to_dict(self) -> Dict[str, Any]:
        data = self.repository.to_dict()
        data.update({
            "category": self.category,
            "category_name": self.category_name,
            "scanned_at": format_timestamp(self.scanned_at),
            "quality_score": self.quality_score.to_dict(),
            "additional_data": self.additional_data.to_dict(),
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RepositoryRecord':
        return cls(
            repository=Repository.from_dict(data),
            category=data["category"],
            category_name=data.get("category_name", data["category"]),
            quality_score=QualityScore.from_dict(data.get("quality_score", {})),
            additional_data=AdditionalData.from_dict(data.get("additional_data", {})),
            scanned_at=parse_timestamp(data.get("scanned_at")),
        )


@dataclass(frozen=True)
class ScanStatus:
    """Durable coordinator state carried between invocations.

    ``completed_categories`` holds the categories refreshed in the current
    cycle; every entry has a matching ``category_timestamps`` key.
    """
    completed_categories: Tuple[str, ...] = ()
    category_timestamps: Dict[str, datetime] = field(default_factory=dict)
    current_cycle: int = 1
    last_full_scan: Optional[datetime] = None
    last_scanned_category: Optional[str] = None
    last_scan_time: Optional[datetime] = None

    def with_changes(self, **changes: Any) -> 'ScanStatus':
        """Returns a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "completed_categories": list(self.completed_categories),
            "category_timestamps": {
                key: format_timestamp(value)
                for key, value in self.category_timestamps.items()
            },
            "current_cycle": self.current_cycle,
            "last_full_scan": format_timestamp(self.last_full_scan),
            "last_scanned_category": self.last_scanned_category,
            "last_scan_time": format_timestamp(self.last_scan_time),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanStatus':
        timestamps = {
            key: parse_timestamp(value)
            for key, value in (data.get("category_timestamps") or {}).items()
            if value
        }
        return cls(
            completed_categories=tuple(data.get("completed_categories") or ()),
            category_timestamps=timestamps,
            current_cycle=data.get("current_cycle") or 1,
            last_full_scan=parse_timestamp(data.get("last_full_scan")),
            last_scanned_category=data.get("last_scanned_category"),
            last_scan_time=parse_timestamp(data.get("last_scan_time")),
        )


@dataclass(frozen=True)
class Category:
    """A topical bucket with its own search terms and language hints."""
    key: str
    name: str
    search_terms: Tuple[str, ...]
    languages: Tuple[str, ...] = ()
    description: str = ""
    icon: str = ""
    primary_color: str = ""


@dataclass(frozen=True)
class ScanLimits:
    """Bounds applied to a single category scan."""
    max_repos_per_search: int = 3
    max_repos_per_category: int = 15
    timeout_seconds: float = 12 * 60
    min_stars: int = 10
    max_age_months: int = 18


@dataclass(frozen=True)
class CategoryScanResult:
    """Outcome of scanning one category."""
    category: str
    repositories: Tuple[RepositoryRecord, ...]
    terms_searched: int
    terms_failed: int
    timed_out: bool
    cap_reached: bool
    duration_seconds: float


@dataclass(frozen=True)
class StagedScanResult:
    """Outcome of one staged step: the category scanned and the new state."""
    category: str
    repositories: Dict[str, RepositoryRecord]
    scan_status: ScanStatus
    scan_result: CategoryScanResult
    is_new_cycle: bool
    forced: bool = False

    @property
    def total_repositories(self) -> int:
        return len(self.repositories)


def repositories_to_document(repositories: Dict[str, RepositoryRecord]) -> Dict[str, Any]:
    """Serialize a repository map into its persisted JSON shape."""
    return {key: record.to_dict() for key, record in repositories.items()}


def repositories_from_document(document: Dict[str, Any]) -> Dict[str, RepositoryRecord]:
    """Inverse of ``repositories_to_document``."""
    return {
        key: RepositoryRecord.from_dict(data)
        for key, data in (document or {}).items()
    }

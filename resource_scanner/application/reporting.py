"""Read-only views of the scanned dataset for reports and site renderers."""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional
from resource_scanner.domain.models import Category, RepositoryRecord, ScanStatus


@dataclass(frozen=True)
class CategoryFreshness:
    key: str
    name: str
    repository_count: int
    last_scanned: Optional[datetime]
    completed_this_cycle: bool


@dataclass(frozen=True)
class DatasetStats:
    total_repositories: int
    total_stars: int
    total_forks: int
    average_score: int
    grade_distribution: Dict[str, int] = field(default_factory=dict)
    language_distribution: Dict[str, int] = field(default_factory=dict)


def sort_by_score(records: Iterable[RepositoryRecord]) -> List[RepositoryRecord]:
    """Highest score first, stars breaking ties."""
    return sorted(
        records,
        key=lambda record: (
            record.quality_score.total,
            record.repository.stargazers_count
        ),
        reverse=True
    )


def group_by_category(
    records: Iterable[RepositoryRecord],
    categories: Mapping[str, Category]
) -> Dict[str, List[RepositoryRecord]]:
    """Group records under every configured category, dropping unknown ones."""
    grouped: Dict[str, List[RepositoryRecord]] = {key: [] for key in categories}
    for record in records:
        if record.category in grouped:
            grouped[record.category].append(record)
    return grouped


def generate_stats(records: Iterable[RepositoryRecord]) -> DatasetStats:
    records = list(records)
    total = len(records)
    average = round(sum(r.quality_score.total for r in records) / total) if total else 0

    return DatasetStats(
        total_repositories=total,
        total_stars=sum(r.repository.stargazers_count for r in records),
        total_forks=sum(r.repository.forks_count for r in records),
        average_score=average,
        grade_distribution=dict(Counter(r.quality_score.grade for r in records)),
        language_distribution=dict(
            Counter(r.repository.language or "Unknown" for r in records)
        ),
    )


def category_freshness(
    repositories: Mapping[str, RepositoryRecord],
    scan_status: ScanStatus,
    categories: Mapping[str, Category]
) -> List[CategoryFreshness]:
    """Per-category record counts and last refresh, in configuration order.

    The scan status is authoritative for freshness: a category without a
    timestamp has never been scanned, whatever records exist for it.
    """
    grouped = group_by_category(repositories.values(), categories)
    return [
        CategoryFreshness(
            key=key,
            name=category.name,
            repository_count=len(grouped[key]),
            last_scanned=scan_status.category_timestamps.get(key),
            completed_this_cycle=key in scan_status.completed_categories,
        )
        for key, category in categories.items()
    ]

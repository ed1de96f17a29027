"""Display statistics about the scanned dataset and category freshness."""
from datetime import datetime, timezone
from dotenv import load_dotenv
from resource_scanner.application.reporting import (
    category_freshness,
    generate_stats,
    sort_by_score,
)
from resource_scanner.domain.categories import CATEGORIES
from resource_scanner.domain.rotation import OldestFirstRotation
from resource_scanner.infrastructure.settings import ScannerSettings
from resource_scanner.infrastructure.storage_factory import create_state_storage

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


def print_section(title: str):
    """Print a section header."""
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def format_age(moment) -> str:
    if moment is None:
        return "never"
    hours = (datetime.now(timezone.utc) - moment).total_seconds() / 3600
    if hours < 48:
        return f"{hours:.0f}h ago"
    return f"{hours / 24:.0f}d ago"


def display_statistics():
    """Display various statistics about the scanned data."""
    storage = create_state_storage(ScannerSettings.from_env())
    try:
        repositories = storage.load_repositories()
        scan_status = storage.load_scan_status()
    finally:
        storage.close()

    stats = generate_stats(repositories.values())

    print_section("Overall Statistics")
    print(f"Total repositories: {stats.total_repositories:,}")
    print(f"Total stars: {stats.total_stars:,}")
    print(f"Total forks: {stats.total_forks:,}")
    print(f"Average score: {stats.average_score}/100")
    print(f"Scan cycle: {scan_status.current_cycle}")
    print(f"Last full scan: {format_age(scan_status.last_full_scan)}")

    print_section("Grade Distribution")
    for grade in ("A+", "A", "B", "C", "D", "F"):
        print(f"{grade:<5} {stats.grade_distribution.get(grade, 0):>10,}")

    print_section("Top Languages")
    languages = sorted(stats.language_distribution.items(), key=lambda item: item[1], reverse=True)
    for language, count in languages[:10]:
        print(f"{language:<30} {count:>10,}")

    print_section("Categories")
    print(f"{'Category':<25} {'Repos':>8} {'Last scan':>12} {'This cycle':>12}")
    print("-" * 60)
    for entry in category_freshness(repositories, scan_status, CATEGORIES):
        done = "yes" if entry.completed_this_cycle else "no"
        print(f"{entry.name:<25} {entry.repository_count:>8,} {format_age(entry.last_scanned):>12} {done:>12}")

    next_category = OldestFirstRotation().select(list(CATEGORIES), scan_status).category
    print(f"\nNext run will scan: {next_category}")

    print_section("Top 10 Repositories by Score")
    print(f"{'Repository':<40} {'Score':>8} {'Grade':>6}")
    print("-" * 60)
    for record in sort_by_score(repositories.values())[:10]:
        print(f"{record.id:<40} {record.quality_score.total:>8} {record.quality_score.grade:>6}")

    print("\n" + "=" * 60)
    print("Report completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    try:
        display_statistics()
    except Exception as e:
        print(f"Error: {e}")
        import sys
        sys.exit(1)

"""Export the repository map to CSV."""
import csv
import logging
import sys
from dotenv import load_dotenv
from resource_scanner.application.reporting import sort_by_score
from resource_scanner.infrastructure.settings import ScannerSettings
from resource_scanner.infrastructure.storage_factory import create_state_storage

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

HEADER = [
    'full_name', 'category', 'grade', 'total_score', 'popularity', 'activity',
    'documentation', 'community', 'maintenance', 'code_quality', 'stars', 'forks',
    'language', 'pushed_at', 'scanned_at', 'url'
]


def export_to_csv(output_file: str = "repositories.csv"):
    """Export scanned repositories to a CSV file, best score first.

    Args:
        output_file: Path to output CSV file
    """
    try:
        storage = create_state_storage(ScannerSettings.from_env())
        try:
            repositories = storage.load_repositories()
        finally:
            storage.close()

        with open(output_file, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(HEADER)

            row_count = 0
            for record in sort_by_score(repositories.values()):
                score = record.quality_score
                repo = record.repository
                writer.writerow([
                    record.id, record.category, score.grade, score.total,
                    score.popularity, score.activity, score.documentation,
                    score.community, score.maintenance, score.code_quality,
                    repo.stargazers_count, repo.forks_count, repo.language or '',
                    repo.pushed_at.isoformat() if repo.pushed_at else '',
                    record.scanned_at.isoformat() if record.scanned_at else '',
                    repo.url
                ])
                row_count += 1

        logger.info(f"Exported {row_count} repositories to {output_file}")

    except Exception as e:
        logger.error(f"Error exporting repositories: {e}")
        sys.exit(1)


if __name__ == "__main__":
    output_file = sys.argv[1] if len(sys.argv) > 1 else "repositories.csv"
    export_to_csv(output_file)

"""Scan one specific category, outside the rotation order.

Usage: python manual_scan.py [category-key]
"""
import asyncio
import logging
import sys
from resource_scanner.domain.categories import CATEGORIES
from resource_scanner.domain.rotation import ForcedCategorySelector
from resource_scanner.infrastructure.settings import ScannerSettings
from staged_scan import configure_logging, run_scan


logger = logging.getLogger(__name__)


def print_categories() -> None:
    print("Available categories:")
    for key, category in CATEGORIES.items():
        print(f"  {key}: {category.name}")
    print("\nUsage: python manual_scan.py [category-key]")
    print("Example: python manual_scan.py web-automation")


def main() -> None:
    category_key = sys.argv[1] if len(sys.argv) > 1 else None

    if not category_key:
        print_categories()
        return

    if category_key not in CATEGORIES:
        print(f"Category {category_key!r} not found!")
        print(f"Available categories: {', '.join(CATEGORIES)}")
        sys.exit(1)

    settings = ScannerSettings.from_env()
    configure_logging(settings.log_level)
    logger.info(f"Manually scanning category: {category_key}")
    sys.exit(asyncio.run(run_scan(settings, ForcedCategorySelector(category_key))))


if __name__ == "__main__":
    main()

"""Verify that the setup is correct before running the scanner."""
import asyncio
import os
import sys
from dotenv import load_dotenv
from resource_scanner.domain.errors import GitHubAuthenticationError
from resource_scanner.domain.search_query import build_search_query
from resource_scanner.infrastructure.github_client import GitHubGraphQLClient
from resource_scanner.infrastructure.settings import ScannerSettings
from resource_scanner.infrastructure.storage_factory import create_state_storage

# Load environment variables from .env or env file
load_dotenv('.env') or load_dotenv('env')


def check_environment_variables():
    """Check required environment variables."""
    print("Checking environment variables...")

    required_vars = ["GITHUB_TOKEN"]
    optional_vars = [
        "MIN_STARS", "MAX_AGE_MONTHS", "MAX_REPOS_PER_SEARCH", "MAX_REPOS_PER_CATEGORY",
        "CATEGORY_TIMEOUT_MINUTES", "RATE_LIMIT_DELAY", "STATE_BACKEND", "DATA_DIR",
    ]

    missing = [var for var in required_vars if not os.getenv(var)]
    if missing:
        print(f"❌ Missing required environment variables: {', '.join(missing)}")
        return False

    print("✅ Required environment variables set")

    for var in optional_vars:
        if os.getenv(var):
            print(f"   {var}: {os.getenv(var)}")

    return True


def check_settings():
    """Check that the settings parse."""
    print("\nChecking settings...")

    try:
        settings = ScannerSettings.from_env()
    except ValueError as e:
        print(f"❌ Invalid settings: {e}")
        return False

    limits = settings.scan_limits()
    print(f"✅ State backend: {settings.state_backend}")
    print(f"   Per search: {limits.max_repos_per_search}, per category: {limits.max_repos_per_category}")
    print(f"   Category timeout: {settings.category_timeout_minutes} minutes")
    return True


def check_state_storage():
    """Check that persisted state can be loaded."""
    print("\nChecking scan state storage...")

    try:
        storage = create_state_storage(ScannerSettings.from_env())
        try:
            repositories = storage.load_repositories()
            scan_status = storage.load_scan_status()
        finally:
            storage.close()
    except Exception as e:
        print(f"❌ Failed to load scan state: {e}")
        return False

    print("✅ Scan state readable")
    print(f"   Repositories: {len(repositories)}, cycle: {scan_status.current_cycle}")
    return True


def check_github_api():
    """Run a one-result search to confirm the token is accepted by GitHub."""
    print("\nChecking GitHub API access...")

    settings = ScannerSettings.from_env()
    if not settings.github_token:
        print("❌ GITHUB_TOKEN not set")
        return False

    async def sample_search():
        client = GitHubGraphQLClient(settings.github_token, request_delay=0)
        try:
            return await client.search_repositories(
                build_search_query(["testing"], min_stars=settings.min_stars), 1
            )
        finally:
            await client.close()

    try:
        repositories = asyncio.run(sample_search())
    except GitHubAuthenticationError as e:
        print(f"❌ GitHub rejected the token: {e}")
        return False

    print("✅ GitHub API reachable")
    if repositories:
        print(f"   Sample result: {repositories[0].full_name}")
    return True


def main():
    """Run all verification checks."""
    print("=" * 60)
    print("Resource Scanner - Setup Verification")
    print("=" * 60)

    checks = [
        ("Environment Variables", check_environment_variables),
        ("Settings", check_settings),
        ("Scan State Storage", check_state_storage),
        ("GitHub API", check_github_api),
    ]

    results = {}
    for name, check_func in checks:
        try:
            results[name] = check_func()
        except Exception as e:
            print(f"❌ {name} check failed with exception: {e}")
            results[name] = False

    print("\n" + "=" * 60)
    print("Verification Summary")
    print("=" * 60)

    for name, passed in results.items():
        status = "✅ PASS" if passed else "❌ FAIL"
        print(f"{status}: {name}")

    if all(results.values()):
        print("\n✅ All checks passed! Ready to run the scanner.")
        print("\nNext steps:")
        print("  python staged_scan.py")
        sys.exit(0)
    else:
        print("\n❌ Some checks failed. Please fix the issues above.")
        print("\nCommon solutions:")
        print("  - Set GITHUB_TOKEN: export GITHUB_TOKEN=your_token")
        print("  - Postgres backend: python setup_postgres.py")
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Runtime configuration read from environment variables.

Entry points load ``.env`` (or ``env``) with python-dotenv before calling
``ScannerSettings.from_env``.
"""
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from resource_scanner.domain.models import ScanLimits


logger = logging.getLogger(__name__)

STATE_BACKENDS = ("json", "postgres")


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


@dataclass(frozen=True)
class ScannerSettings:
    """Immutable settings for one invocation."""
    github_token: Optional[str] = None
    min_stars: int = 10
    max_age_months: int = 18
    max_repos_per_search: int = 3
    max_repos_per_category: int = 15
    category_timeout_minutes: int = 12
    rate_limit_delay_ms: int = 1000
    recent_commits_days: int = 90
    max_concurrent_fetches: int = 4
    state_backend: str = "json"
    data_dir: str = "data"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"
    postgres_db: str = "resource_scanner"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'ScannerSettings':
        """Build settings from the environment, falling back to defaults.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)

        Returns:
            ScannerSettings instance

        Raises:
            ValueError: If ``STATE_BACKEND`` names an unknown backend
        """
        env = os.environ if env is None else env

        state_backend = env.get("STATE_BACKEND", "json").strip().lower()
        if state_backend not in STATE_BACKENDS:
            raise ValueError(
                f"Unknown STATE_BACKEND {state_backend!r}, expected one of {', '.join(STATE_BACKENDS)}"
            )

        return cls(
            github_token=env.get("GITHUB_TOKEN") or None,
            min_stars=_positive_int(env, "MIN_STARS", 10),
            max_age_months=_positive_int(env, "MAX_AGE_MONTHS", 18),
            max_repos_per_search=_positive_int(env, "MAX_REPOS_PER_SEARCH", 3),
            max_repos_per_category=_positive_int(env, "MAX_REPOS_PER_CATEGORY", 15),
            category_timeout_minutes=_positive_int(env, "CATEGORY_TIMEOUT_MINUTES", 12),
            rate_limit_delay_ms=_positive_int(env, "RATE_LIMIT_DELAY", 1000),
            recent_commits_days=_positive_int(env, "RECENT_COMMITS_DAYS", 90),
            max_concurrent_fetches=_positive_int(env, "MAX_CONCURRENT_FETCHES", 4),
            state_backend=state_backend,
            data_dir=env.get("DATA_DIR", "data"),
            postgres_host=env.get("POSTGRES_HOST", "localhost"),
            postgres_port=env.get("POSTGRES_PORT", "5432"),
            postgres_db=env.get("POSTGRES_DB", "resource_scanner"),
            postgres_user=env.get("POSTGRES_USER", "postgres"),
            postgres_password=env.get("POSTGRES_PASSWORD", "postgres"),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def postgres_connection_string(self) -> str:
        """Build PostgreSQL connection string from the settings."""
        return (
            f"host={self.postgres_host} port={self.postgres_port} dbname={self.postgres_db} "
            f"user={self.postgres_user} password={self.postgres_password}"
        )

    @property
    def request_delay_seconds(self) -> float:
        return self.rate_limit_delay_ms / 1000

    def scan_limits(self) -> ScanLimits:
        return ScanLimits(
            max_repos_per_search=self.max_repos_per_search,
            max_repos_per_category=self.max_repos_per_category,
            timeout_seconds=self.category_timeout_minutes * 60,
            min_stars=self.min_stars,
            max_age_months=self.max_age_months,
        )

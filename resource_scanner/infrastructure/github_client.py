"""GitHub GraphQL API client implementation with rate limiting and retry logic."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import aiohttp
from gql import gql, Client
from gql.client import AsyncClientSession
from gql.transport.aiohttp import AIOHTTPTransport
from gql.transport.exceptions import TransportQueryError, TransportServerError
from graphql import DocumentNode
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)
from resource_scanner.domain.errors import GitHubAuthenticationError
from resource_scanner.domain.github_interface import IGitHubClient
from resource_scanner.domain.models import (
    Commit,
    Contributor,
    FileContent,
    Release,
    Repository,
    parse_timestamp,
)


logger = logging.getLogger(__name__)

GRAPHQL_URL = "https://api.github.com/graphql"
REST_URL = "https://api.github.com"
USER_AGENT = "test-resource-scanner"


class RateLimitException(Exception):
    """Exception raised when rate limit is hit."""
    pass


class TransientGitHubError(Exception):
    """Exception raised for server-side failures worth retrying."""
    pass


RETRYABLE_ERRORS = (
    RateLimitException,
    TransientGitHubError,
    asyncio.TimeoutError,
    aiohttp.ClientConnectionError,
)


REPOSITORY_FIELDS = """
    fragment RepositoryFields on Repository {
        name
        owner {
            login
        }
        url
        description
        homepageUrl
        primaryLanguage {
            name
        }
        stargazerCount
        forkCount
        createdAt
        updatedAt
        pushedAt
        isArchived
        isFork
        hasWikiEnabled
        hasIssuesEnabled
        licenseInfo {
            spdxId
            name
        }
        repositoryTopics(first: 20) {
            nodes {
                topic {
                    name
                }
            }
        }
        issues(states: OPEN) {
            totalCount
        }
    }
"""


def parse_repository_node(node: Optional[Dict[str, Any]]) -> Optional[Repository]:
    """Transform a GraphQL repository node into a domain entity.

    Returns None for nodes without an owner or name.
    """
    if not node:
        return None
    owner = (node.get("owner") or {}).get("login")
    name = node.get("name")
    if not owner or not name:
        return None

    license_info = node.get("licenseInfo") or {}
    topics = tuple(
        topic_node["topic"]["name"]
        for topic_node in (node.get("repositoryTopics") or {}).get("nodes") or []
        if topic_node and topic_node.get("topic")
    )

    return Repository(
        owner=owner,
        name=name,
        url=node.get("url") or f"https://github.com/{owner}/{name}",
        description=node.get("description"),
        homepage=node.get("homepageUrl") or None,
        language=(node.get("primaryLanguage") or {}).get("name"),
        stargazers_count=node.get("stargazerCount") or 0,
        forks_count=node.get("forkCount") or 0,
        open_issues_count=(node.get("issues") or {}).get("totalCount") or 0,
        created_at=parse_timestamp(node.get("createdAt")),
        updated_at=parse_timestamp(node.get("updatedAt")),
        pushed_at=parse_timestamp(node.get("pushedAt")),
        topics=topics,
        license=license_info.get("spdxId") or license_info.get("name"),
        archived=bool(node.get("isArchived")),
        fork=bool(node.get("isFork")),
        has_wiki=bool(node.get("hasWikiEnabled")),
        has_issues=bool(node.get("hasIssuesEnabled")),
    )


def parse_release_node(node: Dict[str, Any]) -> Release:
    return Release(
        tag_name=node.get("tagName") or "",
        name=node.get("name"),
        published_at=parse_timestamp(node.get("publishedAt")),
        created_at=parse_timestamp(node.get("createdAt")),
    )


def parse_object_node(path: str, node: Optional[Dict[str, Any]]) -> Optional[FileContent]:
    """Transform a git object (Blob or Tree) into file content."""
    if not node:
        return None
    if node.get("__typename") == "Tree":
        return FileContent(path=path, is_directory=True)
    if node.get("isBinary"):
        return FileContent(path=path)
    return FileContent(path=path, text=node.get("text") or "")


def _is_not_found(error: TransportQueryError) -> bool:
    return any(
        isinstance(item, dict) and item.get("type") == "NOT_FOUND"
        for item in (error.errors or [])
    )


class GitHubGraphQLClient(IGitHubClient):
    """GitHub API client with rate limiting and retry mechanisms.

    Implements the IGitHubClient port, providing an anti-corruption layer
    between the domain and GitHub's API. Everything goes through GraphQL
    except the contributor listing, which only exists in the REST API.
    """

    SEARCH_QUERY = gql("""
        query SearchRepositories($query: String!, $first: Int!) {
            search(query: $query, type: REPOSITORY, first: $first) {
                nodes {
                    ... on Repository {
                        ...RepositoryFields
                    }
                }
            }
            rateLimit {
                remaining
                resetAt
            }
        }
    """ + REPOSITORY_FIELDS)

    CONTENTS_QUERY = gql("""
        query RepositoryContents($owner: String!, $name: String!, $expression: String!) {
            repository(owner: $owner, name: $name) {
                object(expression: $expression) {
                    __typename
                    ... on Blob {
                        text
                        isBinary
                    }
                }
            }
            rateLimit {
                remaining
                resetAt
            }
        }
    """)

    RELEASES_QUERY = gql("""
        query RepositoryReleases($owner: String!, $name: String!) {
            repository(owner: $owner, name: $name) {
                releases(first: 10, orderBy: {field: CREATED_AT, direction: DESC}) {
                    nodes {
                        tagName
                        name
                        publishedAt
                        createdAt
                    }
                }
            }
            rateLimit {
                remaining
                resetAt
            }
        }
    """)

    COMMITS_QUERY = gql("""
        query RepositoryCommits($owner: String!, $name: String!, $since: GitTimestamp!) {
            repository(owner: $owner, name: $name) {
                defaultBranchRef {
                    target {
                        ... on Commit {
                            history(first: 100, since: $since) {
                                nodes {
                                    oid
                                    committedDate
                                }
                            }
                        }
                    }
                }
            }
            rateLimit {
                remaining
                resetAt
            }
        }
    """)

    def __init__(self, access_token: str, request_delay: float = 1.0):
        """Initialize GitHub client.

        Args:
            access_token: GitHub personal access token
            request_delay: Seconds to wait before every request
        """
        self._access_token = access_token
        self._request_delay = request_delay
        self._client: Optional[Client] = None
        self._session: Optional[AsyncClientSession] = None
        self._http: Optional[aiohttp.ClientSession] = None
        self._connect_lock = asyncio.Lock()
        self._rate_limit_remaining: int = 5000
        self._rate_limit_reset_at: Optional[datetime] = None

    async def _init_client(self) -> AsyncClientSession:
        """Initialize the GraphQL session (lazy initialization)."""
        async with self._connect_lock:
            if self._session is None:
                transport = AIOHTTPTransport(
                    url=GRAPHQL_URL,
                    headers={
                        "Authorization": f"Bearer {self._access_token}",
                        "User-Agent": USER_AGENT,
                    }
                )
                self._client = Client(
                    transport=transport,
                    fetch_schema_from_transport=False
                )
                self._session = await self._client.connect_async(reconnecting=False)
        return self._session

    async def _init_http(self) -> aiohttp.ClientSession:
        if self._http is None:
            self._http = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Accept": "application/vnd.github+json",
                    "User-Agent": USER_AGENT,
                },
                timeout=aiohttp.ClientTimeout(total=30)
            )
        return self._http

    async def _check_rate_limit(self) -> None:
        """Check and handle rate limiting."""
        if self._rate_limit_remaining <= 10:
            if self._rate_limit_reset_at:
                wait_time = (self._rate_limit_reset_at - datetime.now(timezone.utc)).total_seconds()
                if wait_time > 0:
                    logger.warning(
                        f"Rate limit nearly exhausted. Waiting {wait_time:.0f} seconds "
                        f"until reset at {self._rate_limit_reset_at}"
                    )
                    await asyncio.sleep(wait_time + 1)  # Add 1 second buffer

    def _update_rate_limit(self, result: Dict[str, Any]) -> None:
        rate_limit = result.get("rateLimit") or {}
        if "remaining" in rate_limit:
            self._rate_limit_remaining = rate_limit["remaining"]
        reset_at = parse_timestamp(rate_limit.get("resetAt"))
        if reset_at:
            self._rate_limit_reset_at = reset_at
        logger.debug(
            f"Rate limit remaining: {self._rate_limit_remaining}, "
            f"resets at: {self._rate_limit_reset_at}"
        )

    @retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        reraise=True
    )
    async def _execute_query(self, document: DocumentNode, variables: Dict[str, Any]) -> dict:
        """Execute GraphQL query with retry logic.

        Args:
            document: Parsed GraphQL document
            variables: Query variables

        Returns:
            Query result dictionary

        Raises:
            RateLimitException: When rate limit is hit
            GitHubAuthenticationError: When the token is rejected
            TransportQueryError: For GraphQL errors such as NOT_FOUND
        """
        session = await self._init_client()
        await self._check_rate_limit()
        await asyncio.sleep(self._request_delay)

        try:
            result = await session.execute(document, variable_values=variables)
        except TransportServerError as e:
            if e.code == 401:
                raise GitHubAuthenticationError(f"GitHub rejected the access token: {e}") from e
            if e.code in (403, 429) and "rate limit" in str(e).lower():
                raise RateLimitException(str(e)) from e
            if e.code is not None and e.code >= 500:
                raise TransientGitHubError(str(e)) from e
            logger.error(f"Error executing GraphQL query: {e}")
            raise
        except TransportQueryError as e:
            if "rate limit" in str(e).lower():
                raise RateLimitException(str(e)) from e
            raise

        self._update_rate_limit(result)
        return result

    async def _repository_query(
        self,
        document: DocumentNode,
        owner: str,
        name: str,
        **variables: Any
    ) -> Optional[Dict[str, Any]]:
        """Run a query rooted at ``repository``; None when the repository is missing."""
        try:
            result = await self._execute_query(document, {"owner": owner, "name": name, **variables})
        except TransportQueryError as e:
            if _is_not_found(e):
                return None
            raise
        return result.get("repository")

    async def search_repositories(self, query: str, page_size: int) -> List[Repository]:
        """Search repositories.

        Args:
            query: Search string including qualifiers
            page_size: Maximum number of results (GitHub caps at 100)

        Returns:
            Repository domain entities in search order
        """
        first = max(1, min(page_size, 100))
        result = await self._execute_query(self.SEARCH_QUERY, {"query": query, "first": first})
        nodes = (result.get("search") or {}).get("nodes") or []

        repositories = []
        for node in nodes:
            repository = parse_repository_node(node)
            if repository is not None:
                repositories.append(repository)

        logger.debug(f"Search returned {len(repositories)} repositories for {query!r}")
        return repositories[:first]

    async def get_contents(self, owner: str, name: str, path: str) -> Optional[FileContent]:
        repository = await self._repository_query(
            self.CONTENTS_QUERY, owner, name, expression=f"HEAD:{path}"
        )
        if repository is None:
            return None
        return parse_object_node(path, repository.get("object"))

    async def get_releases(self, owner: str, name: str) -> List[Release]:
        repository = await self._repository_query(self.RELEASES_QUERY, owner, name)
        if repository is None:
            return []
        nodes = (repository.get("releases") or {}).get("nodes") or []
        return [parse_release_node(node) for node in nodes if node]

    async def get_commits(self, owner: str, name: str, since: datetime) -> List[Commit]:
        repository = await self._repository_query(
            self.COMMITS_QUERY, owner, name, since=since.isoformat()
        )
        if repository is None:
            return []
        target = (repository.get("defaultBranchRef") or {}).get("target") or {}
        nodes = (target.get("history") or {}).get("nodes") or []
        return [
            Commit(sha=node["oid"], committed_at=parse_timestamp(node.get("committedDate")))
            for node in nodes
            if node and node.get("oid")
        ]

    @retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=4, max=60),
        reraise=True
    )
    async def get_contributors(self, owner: str, name: str) -> List[Contributor]:
        """Fetch up to 100 contributors through the REST API."""
        http = await self._init_http()
        await asyncio.sleep(self._request_delay)

        url = f"{REST_URL}/repos/{owner}/{name}/contributors"
        async with http.get(url, params={"per_page": "100"}) as response:
            if response.status in (204, 404):
                return []
            if response.status == 401:
                raise GitHubAuthenticationError("GitHub rejected the access token")
            if response.status in (403, 429) and response.headers.get("X-RateLimit-Remaining") == "0":
                raise RateLimitException(f"REST rate limit hit for {owner}/{name}")
            if response.status >= 500:
                raise TransientGitHubError(f"GitHub returned {response.status} for {url}")
            response.raise_for_status()
            payload = await response.json()

        return [
            Contributor(login=item.get("login") or "", contributions=item.get("contributions", 0))
            for item in payload or []
            if isinstance(item, dict)
        ]

    async def close(self) -> None:
        """Close the GraphQL client and the REST session."""
        if self._client is not None and self._session is not None:
            await self._client.close_async()
        self._client = None
        self._session = None
        if self._http is not None:
            await self._http.close()
            self._http = None

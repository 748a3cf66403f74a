"""GitHub commit history client.

GitHub REST API reference:
https://docs.github.com/en/rest/commits/commits#list-commits
"""

import logging
import re
from datetime import datetime, timezone

import httpx

from schemas.context import CommitInfo

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"

# "Merge pull request #123 from ..." or a squash-merge "Title (#123)".
_PR_NUMBER = re.compile(r"(?:pull request #|\(#)(\d+)")


def _parse_timestamp(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def _pr_number(message: str) -> int | None:
    match = _PR_NUMBER.search(message)
    return int(match.group(1)) if match else None


class GitHubClient:
    """CommitSource implementation backed by the GitHub REST API.

    Attributes:
        base_url: API root. Override for GitHub Enterprise.
        per_page: Page size requested. Only the first page is fetched.
    """

    def __init__(
        self,
        base_url: str = GITHUB_API_BASE,
        token: str = "",
        per_page: int = 30,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or GITHUB_API_BASE).rstrip("/")
        self.per_page = per_page
        self._token = token
        self._timeout = timeout
        self._transport = transport

    async def fetch_commits(self, repo: str, since: datetime) -> list[CommitInfo]:
        """Return commits to owner/repo since the given time, newest first.

        Raises:
            ValueError: If repo is not in owner/repo form.
            httpx.HTTPStatusError: On a non-2xx response.
        """
        owner, _, name = repo.partition("/")
        if not owner or not name:
            raise ValueError(f"invalid repo format: {repo!r} (expected owner/repo)")

        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        since_utc = since.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        params = {"since": since_utc, "per_page": self.per_page}

        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = await client.get(f"/repos/{owner}/{name}/commits", params=params)
            resp.raise_for_status()
            payload = resp.json()

        commits = [self._to_commit(item) for item in payload]
        logger.debug("Fetched %d commits for %s since %s.", len(commits), repo, since_utc)
        return commits

    def _to_commit(self, item: dict) -> CommitInfo:
        commit = item.get("commit", {})
        author = commit.get("author") or {}
        message = commit.get("message", "")
        return CommitInfo(
            sha=item.get("sha", ""),
            message=message,
            author=author.get("name", ""),
            email=author.get("email", ""),
            url=item.get("html_url", ""),
            timestamp=_parse_timestamp(author.get("date")),
            pr_number=_pr_number(message),
        )

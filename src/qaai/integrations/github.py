"""GitHub REST client: pull request lookups, check runs and issues."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import httpx
from pydantic import BaseModel

from qaai.config import settings
from qaai.errors.exceptions import CollaboratorError, PayloadError

logger = logging.getLogger(__name__)

_PR_URL_RE = re.compile(r"github\.com/([^/]+)/([^/]+)/pull/(\d+)")

JSON_ACCEPT = "application/vnd.github+json"
DIFF_ACCEPT = "application/vnd.github.v3.diff"


@dataclass(frozen=True)
class PullRequestRef:
    owner: str
    repo: str
    number: int


class PullRequestMetadata(BaseModel):
    title: str
    body: str | None = None
    state: str
    author: str | None = None
    base_branch: str | None = None
    head_branch: str | None = None
    head_sha: str
    changed_files: int = 0
    additions: int = 0
    deletions: int = 0


class GitHubClient:
    """Thin async wrapper over the GitHub REST API.

    Every non-2xx response raises :class:`CollaboratorError` carrying the
    status code and response body.
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = (base_url or settings.github_api_url).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def parse_pr_url(pr_url: str) -> PullRequestRef:
        match = _PR_URL_RE.search(pr_url or "")
        if not match:
            raise PayloadError(f"Invalid GitHub PR URL: {pr_url}")
        return PullRequestRef(owner=match.group(1), repo=match.group(2), number=int(match.group(3)))

    def _headers(self, accept: str = JSON_ACCEPT) -> dict[str, str]:
        headers = {"Accept": accept, "User-Agent": "QAAI-Runner"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, accept: str = JSON_ACCEPT, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.request(method, url, headers=self._headers(accept), **kwargs)
        except httpx.HTTPError as exc:
            raise CollaboratorError("github", f"{method} {path} failed: {exc}") from exc

        if response.status_code >= 300:
            raise CollaboratorError(
                "github",
                f"API error: {response.status_code} {response.text}",
                details={"status_code": response.status_code, "path": path},
            )
        return response

    def _require_token(self, action: str) -> None:
        if not self.token:
            raise CollaboratorError("github", f"GitHub token is required to {action}")

    async def fetch_pr_metadata(self, pr_url: str) -> PullRequestMetadata:
        ref = self.parse_pr_url(pr_url)
        logger.info("Fetching PR metadata %s/%s#%d", ref.owner, ref.repo, ref.number)
        response = await self._request("GET", f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}")
        pr = response.json()
        return PullRequestMetadata(
            title=pr["title"],
            body=pr.get("body"),
            state=pr["state"],
            author=(pr.get("user") or {}).get("login"),
            base_branch=(pr.get("base") or {}).get("ref"),
            head_branch=(pr.get("head") or {}).get("ref"),
            head_sha=pr["head"]["sha"],
            changed_files=pr.get("changed_files") or 0,
            additions=pr.get("additions") or 0,
            deletions=pr.get("deletions") or 0,
        )

    async def fetch_pr_diff(self, pr_url: str) -> str:
        """Unified diff of a pull request."""
        ref = self.parse_pr_url(pr_url)
        response = await self._request(
            "GET", f"/repos/{ref.owner}/{ref.repo}/pulls/{ref.number}", accept=DIFF_ACCEPT
        )
        logger.info("Fetched diff for %s/%s#%d (%d bytes)", ref.owner, ref.repo, ref.number, len(response.text))
        return response.text

    async def create_check_run(
        self,
        owner: str,
        repo: str,
        name: str,
        head_sha: str,
        status: str = "completed",
        conclusion: str | None = None,
        title: str | None = None,
        summary: str | None = None,
    ) -> dict:
        self._require_token("create check runs")
        body: dict = {"name": name, "head_sha": head_sha, "status": status}
        if status == "completed":
            body["conclusion"] = conclusion
            body["output"] = {"title": title, "summary": summary}

        response = await self._request("POST", f"/repos/{owner}/{repo}/check-runs", json=body)
        created = response.json()
        logger.info("Check run %s created on %s/%s@%s", created.get("id"), owner, repo, head_sha)
        return {"id": created.get("id"), "url": created.get("html_url")}

    async def create_issue(self, owner: str, repo: str, title: str, body: str, labels: list[str] | None = None) -> dict:
        self._require_token("create issues")
        response = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues",
            json={"title": title, "body": body, "labels": labels or []},
        )
        created = response.json()
        logger.info("Issue #%s created on %s/%s", created.get("number"), owner, repo)
        return {"number": created.get("number"), "url": created.get("html_url"), "id": created.get("id")}

    async def search_issues(self, owner: str, repo: str, query: str) -> list[dict]:
        """Issues of ``owner/repo`` matching a GitHub search ``query``."""
        response = await self._request(
            "GET",
            "/search/issues",
            params={"q": f"repo:{owner}/{repo} is:issue {query}"},
        )
        return response.json().get("items") or []

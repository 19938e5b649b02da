"""GitHub API implementation of issue tracker."""

import logging
from datetime import datetime
from typing import Any

import httpx

from ..common import TransientAPIError, parse_timestamp, utc_now
from ..config import settings
from .public_api import Comment, IssueInfo, IssueState, IssueTracker

logger = logging.getLogger("resolution_tracker.github")


class GitHubClient(IssueTracker):
    """
    GitHub implementation of the issue tracker interface.

    Timeouts, transport failures and 5xx responses are raised as
    TransientAPIError; other error statuses as httpx.HTTPStatusError.
    """

    BASE_URL = "https://api.github.com"
    PER_PAGE = 100

    def __init__(self, token: str | None = None, timeout: float | None = None):
        self._token = token or settings.github_token
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        # Anonymous access still works for reading public repositories
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._client = httpx.AsyncClient(
            base_url=self.BASE_URL,
            headers=headers,
            timeout=timeout or settings.github_timeout_seconds,
        )

    async def list_repo_comments(self, repo: str, since: datetime) -> list[Comment]:
        """List comments on all issues in a repo created at or after ``since``.

        GitHub's ``since`` filters on update time, so comments created
        earlier but edited later are dropped here.
        """
        params = {
            "sort": "created",
            "direction": "asc",
            "since": since.isoformat(),
        }
        comments = []
        for item in await self._paginate(f"/repos/{repo}/issues/comments", params):
            comment = self._parse_comment(item)
            if comment.created_at < since:
                continue
            comments.append(comment)
        return comments

    async def get_issue(self, repo: str, number: int) -> IssueInfo:
        """Get a GitHub issue's title, body, labels and state."""
        response = await self._request("GET", f"/repos/{repo}/issues/{number}")
        return self._parse_issue(response.json())

    async def list_comments(self, repo: str, number: int) -> list[Comment]:
        """Fetch all comments for an issue."""
        items = await self._paginate(f"/repos/{repo}/issues/{number}/comments")
        return [self._parse_comment(item) for item in items]

    async def list_collaborators(self, repo: str) -> set[str]:
        """Fetch the logins of all collaborators on a repo."""
        items = await self._paginate(f"/repos/{repo}/collaborators")
        return {item["login"] for item in items if item.get("login")}

    async def create_issue(
        self,
        repo: str,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueInfo:
        """Create a new issue."""
        payload: dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = labels

        response = await self._request("POST", f"/repos/{repo}/issues", json=payload)
        issue = self._parse_issue(response.json())
        logger.info(f"Created issue {repo}#{issue.number}: {title}")
        return issue

    async def add_comment(self, repo: str, number: int, body: str) -> None:
        """Add a comment to an issue."""
        await self._request(
            "POST",
            f"/repos/{repo}/issues/{number}/comments",
            json={"body": body},
        )
        logger.info(f"Added comment to {repo}#{number}")

    async def update_issue_state(self, repo: str, number: int, state: IssueState) -> None:
        """Open or close an issue."""
        await self._request(
            "PATCH",
            f"/repos/{repo}/issues/{number}",
            json={"state": state.value},
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request, classifying failures."""
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise TransientAPIError("github", f"{method} {url} failed: {e}") from e

        if response.status_code >= 500:
            raise TransientAPIError(
                "github",
                f"{method} {url} returned {response.status_code}",
                status_code=response.status_code,
            )
        response.raise_for_status()
        return response

    async def _paginate(self, url: str, params: dict | None = None) -> list[dict]:
        """Fetch every page of a list endpoint."""
        results: list[dict] = []
        page = 1

        while True:
            page_params = {**(params or {}), "per_page": self.PER_PAGE, "page": page}
            response = await self._request("GET", url, params=page_params)
            data = response.json()

            if not data:
                break

            results.extend(data)

            if len(data) < self.PER_PAGE:
                break
            page += 1

        return results

    def _parse_comment(self, data: dict) -> Comment:
        """Parse GitHub API comment into Comment."""
        user = data.get("user") or {}
        return Comment(
            id=data["id"],
            body=data.get("body") or "",
            author_login=user.get("login", ""),
            html_url=data.get("html_url", ""),
            issue_url=data.get("issue_url", ""),
            created_at=parse_timestamp(data.get("created_at")) or utc_now(),
        )

    def _parse_issue(self, data: dict) -> IssueInfo:
        """Parse GitHub API response into IssueInfo."""
        state = IssueState.CLOSED if data.get("state") == "closed" else IssueState.OPEN
        return IssueInfo(
            number=data["number"],
            title=data["title"],
            body=data.get("body") or None,
            state=state,
            labels=[label["name"] for label in data.get("labels", [])],
            html_url=data.get("html_url", ""),
        )

"""
GitHub GraphQL client: one query per card.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger("impact_card.github")

# -----------------------------
# Config
# -----------------------------
GITHUB_GRAPHQL = os.getenv("GITHUB_GRAPHQL_URL", "https://api.github.com/graphql")
API_VERSION = os.getenv("GITHUB_API_VERSION", "2022-11-28")
REQUEST_TIMEOUT_SECONDS = float(os.getenv("GITHUB_TIMEOUT_SECONDS", "25"))


class GitHubAPIError(RuntimeError):
    pass


class UserNotFound(GitHubAPIError):
    pass


USER_METRICS_QUERY = """
query($login:String!) {
  user(login:$login) {
    login
    name
    avatarUrl
    createdAt
    followers { totalCount }
    following { totalCount }
    gists(privacy:PUBLIC) { totalCount }
    sponsorshipsAsMaintainer { totalCount }
    organizations { totalCount }
    repositoryDiscussionComments { totalCount }
    issues(states:CLOSED) { totalCount }
    pullRequests(states:[OPEN, MERGED]) { totalCount }

    contributionsCollection {
      totalCommitContributions
      totalPullRequestReviewContributions
      contributionCalendar {
        weeks {
          contributionDays {
            date
            contributionCount
            weekday
          }
        }
      }
    }

    repositories(
      first:100,
      privacy:PUBLIC,
      ownerAffiliations:OWNER,
      isFork:false,
      orderBy:{field:STARGAZERS, direction:DESC}
    ) {
      nodes {
        name
        stargazerCount
        forkCount
        primaryLanguage { name color }
      }
    }
  }
}
"""


def get_token() -> str:
    return (os.getenv("GH_TOKEN") or os.getenv("GITHUB_TOKEN") or "").strip()


def _headers(token: str) -> Dict[str, str]:
    return {
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {token}",
        "User-Agent": "github-impact-card",
        "X-GitHub-Api-Version": API_VERSION,
    }


def _graphql(token: str, query: str, variables: Dict[str, Any], timeout: Optional[float] = None) -> Dict[str, Any]:
    payload = {"query": query, "variables": variables}
    try:
        resp = requests.post(
            GITHUB_GRAPHQL,
            headers=_headers(token),
            json=payload,
            timeout=timeout or REQUEST_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise GitHubAPIError(f"GitHub request failed: {e}") from e

    if resp.status_code >= 400:
        raise GitHubAPIError(f"GitHub API error ({resp.status_code}): {resp.text[:600]}")

    try:
        body = resp.json()
    except ValueError as e:
        raise GitHubAPIError(f"GitHub returned invalid JSON: {e}") from e

    errors = body.get("errors") if isinstance(body, dict) else None
    if errors:
        messages = "; ".join(
            str(err.get("message") if isinstance(err, dict) else err) for err in errors
        )
        # GitHub reports an unknown login as a NOT_FOUND error next to `user: null`.
        if all(isinstance(err, dict) and err.get("type") == "NOT_FOUND" for err in errors):
            raise UserNotFound(messages)
        raise GitHubAPIError(f"GitHub API returned errors: {messages}")

    data = body.get("data") if isinstance(body, dict) else None
    return data or {}


def fetch_user(token: str, username: str) -> Dict[str, Any]:
    """
    Fetch the raw `user` object backing a card.

    Raises UserNotFound when GitHub answers successfully without a user, and
    GitHubAPIError for transport, HTTP and GraphQL failures.
    """
    data = _graphql(token, USER_METRICS_QUERY, {"login": username})
    user = data.get("user")
    if not user:
        raise UserNotFound(f"User '{username}' not found on GitHub.")
    logger.debug("fetched GitHub profile for %s", username)
    return user

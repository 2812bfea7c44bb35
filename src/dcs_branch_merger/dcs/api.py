"""Leaf effects for the DCS (Gitea) REST API.

Each effect reads what it needs from the environment record (``server``,
``owner``, ``repo``, ``tokenid``, ...) and opens its own client session.
Transport and status errors surface as effect failures.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

from ..core import (
    FAILURE,
    Environment,
    Result,
    Success,
    extend_config,
    for_every_first,
    leaf,
    or_,
    pure,
    then,
)
from .client import DCSClient

logger = logging.getLogger(__name__)

OPEN_PULLS_LIMIT = 50


def _repo_endpoint(env: Environment, path: str = "") -> str:
    endpoint = f"repos/{env.owner}/{env.repo}"
    path = path.lstrip("/")
    return f"{endpoint}/{path}" if path else endpoint


async def _request(env: Environment, method: str, endpoint: str, **kwargs) -> Any:
    async with DCSClient.for_environment(env) as client:
        return await client.request_json(method, endpoint, **kwargs)


def repo_get_json(path: str):
    """GET ``<server>/<api_path>/repos/<owner>/<repo>/<path>``."""

    @leaf
    async def _repo_get_json(env: Environment) -> Any:
        return await _request(env, "GET", _repo_endpoint(env, path))

    return _repo_get_json


get_repo_json = repo_get_json("")


async def configured_default_branch(env: Environment) -> Result[str]:
    if env.default_branch:
        return Success(env.default_branch)
    return FAILURE


@leaf
async def repository_default_branch(env: Environment) -> str:
    repo = await _request(env, "GET", _repo_endpoint(env))
    return repo["default_branch"]


# The configured branch wins; otherwise ask the server.
get_default_branch = or_(configured_default_branch, repository_default_branch)


@leaf
async def get_pr_json(env: Environment) -> dict:
    """Fetch the pull request ``env.pr_id``."""
    if env.pr_id is None:
        raise ValueError("pr_id is required to fetch a pull request")
    return await _request(env, "GET", _repo_endpoint(env, f"pulls/{env.pr_id}"))


@leaf
async def get_user_json(env: Environment) -> dict:
    """Fetch the user that owns ``env.tokenid``."""
    return await _request(env, "GET", "user")


@leaf
async def get_username(env: Environment) -> str:
    user = await _request(env, "GET", "user")
    return user["login"]


@leaf
async def list_open_pulls(env: Environment) -> list:
    """All open pull requests, read page by page until a short page comes back."""
    pulls = []
    page = 1
    while True:
        batch = await _request(
            env,
            "GET",
            _repo_endpoint(env, "pulls"),
            params={"state": "open", "page": page, "limit": OPEN_PULLS_LIMIT},
        )
        batch = batch or []
        pulls.extend(batch)
        if len(batch) < OPEN_PULLS_LIMIT:
            return pulls
        page += 1


def _branch_ref(pr: dict, side: str) -> Optional[str]:
    return (pr.get(side) or {}).get("ref")


def find_open_pr(head: str, base: str):
    """First open pull request merging ``head`` into ``base``; fails if there is none."""

    def _matching(pr: dict):
        if _branch_ref(pr, "head") == head and _branch_ref(pr, "base") == base:
            return pure(pr)
        return pure(None)

    return then(list_open_pulls, lambda pulls: for_every_first(_matching, pulls))


def create_pr(
    head: str, base: str, title: Optional[str] = None, body: Optional[str] = None
):
    """Open a pull request merging ``head`` into ``base``.

    ``body`` defaults to ``env.description``.
    """

    @leaf
    async def _create_pr(env: Environment) -> dict:
        payload = {
            "head": head,
            "base": base,
            "title": title or f"Merge {head} into {base}",
        }
        description = body or env.description
        if description:
            payload["body"] = description
        logger.info(
            f"Creating pull request {head} -> {base}",
            extra={"owner": env.owner, "repo": env.repo},
        )
        return await _request(env, "POST", _repo_endpoint(env, "pulls"), json=payload)

    return _create_pr


def get_or_create_pr(head: str, base: str):
    return or_(find_open_pr(head, base), create_pr(head, base))


def merge_pr(
    pr_id: Optional[int] = None, style: str = "merge", message: Optional[str] = None
):
    """Merge pull request ``pr_id``; succeeds with ``True``.

    ``pr_id`` and ``message`` default to ``env.pr_id`` and ``env.description``.
    """

    @leaf
    async def _merge_pr(env: Environment) -> bool:
        number = pr_id if pr_id is not None else env.pr_id
        if number is None:
            raise ValueError("pr_id is required to merge a pull request")
        payload = {"Do": style}
        merge_message = message or env.description
        if merge_message:
            payload["MergeMessageField"] = merge_message
        logger.info(
            f"Merging pull request #{number} ({style})",
            extra={"owner": env.owner, "repo": env.repo},
        )
        await _request(
            env, "POST", _repo_endpoint(env, f"pulls/{number}/merge"), json=payload
        )
        return True

    return _merge_pr


async def _compare(env: Environment, base: str, head: str) -> dict:
    span = f"{quote(base, safe='')}...{quote(head, safe='')}"
    return await _request(env, "GET", _repo_endpoint(env, f"compare/{span}"))


def compare_commits(base: str, head: str):
    """Commits reachable from ``head`` but not from ``base``."""

    @leaf
    async def _compare_commits(env: Environment) -> dict:
        return await _compare(env, base, head)

    return _compare_commits


def commits_ahead(head: str, base: str):
    """Number of commits ``head`` has that ``base`` lacks."""

    @leaf
    async def _commits_ahead(env: Environment) -> int:
        comparison = await _compare(env, base, head)
        total = comparison.get("total_commits")
        if total is None:
            total = len(comparison.get("commits") or [])
        return total

    return _commits_ahead


@leaf
async def check_filename_updateable(env: Environment) -> bool:
    """True when no commit between the PR's merge base and base sha touched ``env.filename``.

    Needs ``env.pr_json`` (with ``base.sha`` and ``merge_base``) and ``env.filename``.
    """
    pr_json = getattr(env, "pr_json", None)
    if not pr_json or not env.filename:
        raise ValueError("pr_json and filename are required")
    base_sha = pr_json["base"]["sha"]
    merge_base = pr_json["merge_base"]
    if base_sha == merge_base:
        return True

    comparison = await _request(
        env, "GET", _repo_endpoint(env, f"compare/{merge_base}...{base_sha}")
    )
    touched = {
        changed.get("filename")
        for commit in comparison.get("commits") or []
        for changed in commit.get("files") or []
    }
    return env.filename not in touched


# Fetch ``env.pr_id`` and check ``env.filename`` against it.
check_pr_filename_updateable = then(
    get_pr_json,
    lambda pr_json: extend_config({"pr_json": pr_json}, check_filename_updateable),
)

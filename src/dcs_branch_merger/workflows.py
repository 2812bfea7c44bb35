"""Check-then-merge workflows between a repository's default branch and a user branch.

A check finds the commits one branch is missing, opens (or reuses) a pull
request for them and reports whether it can be merged. A merge runs the check
and merges the pull request when that is needed and conflict free. Both always
succeed with a :class:`MergeStatus`; problems are reported through its
``error`` flag.
"""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from .core import (
    FAILURE,
    Environment,
    Result,
    Success,
    extend_config,
    map_,
    or_,
    pure,
    then,
)
from .dcs.api import commits_ahead, get_default_branch, get_or_create_pr, merge_pr

logger = logging.getLogger(__name__)


class MergeDirection(str, Enum):
    DEFAULT_INTO_USER = "default-into-user"
    USER_INTO_DEFAULT = "user-into-default"


class MergeStatus(BaseModel):
    """Outcome of a check or merge."""

    merge_needed: bool = False
    conflict: bool = False
    error: bool = False
    message: str = ""
    pull_request: Optional[int] = None
    url: Optional[str] = None


def classify_pull_request(pr: dict) -> MergeStatus:
    """Decide what a pull request still needs from its JSON."""
    number = pr.get("number")
    url = pr.get("html_url")

    if pr.get("merged"):
        return MergeStatus(message="Pull request already merged", pull_request=number, url=url)

    head_sha = (pr.get("head") or {}).get("sha")
    if not head_sha or head_sha == pr.get("merge_base"):
        return MergeStatus(message="No merge needed", pull_request=number, url=url)

    if pr.get("mergeable") is False:
        return MergeStatus(
            merge_needed=True,
            conflict=True,
            message="Merge conflicts must be resolved manually",
            pull_request=number,
            url=url,
        )

    return MergeStatus(
        merge_needed=True, message="Merge can proceed", pull_request=number, url=url
    )


async def user_branch(env: Environment) -> Result[str]:
    if env.user_branch:
        return Success(env.user_branch)
    return FAILURE


def merge_branches(direction: MergeDirection):
    """Effect producing ``(head, base)`` for ``direction``."""

    def _pair(default: str):
        if direction == MergeDirection.DEFAULT_INTO_USER:
            return map_(lambda user: (default, user), user_branch)
        return map_(lambda user: (user, default), user_branch)

    return then(get_default_branch, _pair)


def _status_for_branches(branches: tuple):
    head, base = branches

    def _from_commit_count(ahead: int):
        if ahead == 0:
            return pure(MergeStatus(message=f"{base} is up to date with {head}"))
        logger.debug(f"{head} is {ahead} commit(s) ahead of {base}")
        return map_(classify_pull_request, get_or_create_pr(head, base))

    return then(commits_ahead(head, base), _from_commit_count)


def check_merge(direction: MergeDirection):
    """Check whether ``direction`` needs a merge, opening a pull request if it does."""
    return or_(
        then(merge_branches(direction), _status_for_branches),
        pure(MergeStatus(error=True, message=f"Unable to check {direction.value} merge")),
    )


def _merge_if_needed(status: MergeStatus):
    if status.error or status.conflict or not status.merge_needed:
        return pure(status)

    merged = status.model_copy(update={"merge_needed": False, "message": "Merge succeeded"})
    failed = status.model_copy(update={"error": True, "message": "Merge failed"})
    return or_(
        map_(
            lambda _: merged,
            extend_config({"pr_id": status.pull_request}, merge_pr()),
        ),
        pure(failed),
    )


def merge(direction: MergeDirection):
    """Check ``direction`` and merge its pull request when possible."""
    return then(check_merge(direction), _merge_if_needed)


check_merge_default_into_user_branch = check_merge(MergeDirection.DEFAULT_INTO_USER)
merge_default_into_user_branch = merge(MergeDirection.DEFAULT_INTO_USER)
check_merge_user_into_default_branch = check_merge(MergeDirection.USER_INTO_DEFAULT)
merge_user_into_default_branch = merge(MergeDirection.USER_INTO_DEFAULT)

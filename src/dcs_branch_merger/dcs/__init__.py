"""DCS (Gitea) integration: client and leaf effects"""

from .api import (
    check_filename_updateable,
    check_pr_filename_updateable,
    commits_ahead,
    compare_commits,
    create_pr,
    find_open_pr,
    get_default_branch,
    get_or_create_pr,
    get_pr_json,
    get_repo_json,
    get_user_json,
    get_username,
    list_open_pulls,
    merge_pr,
    repo_get_json,
    repository_default_branch,
)
from .client import DCSClient

__all__ = [
    "DCSClient",
    # Read operations
    "repo_get_json",
    "get_repo_json",
    "get_default_branch",
    "repository_default_branch",
    "get_pr_json",
    "get_user_json",
    "get_username",
    "list_open_pulls",
    "find_open_pr",
    "compare_commits",
    "commits_ahead",
    "check_filename_updateable",
    "check_pr_filename_updateable",
    # Write operations
    "create_pr",
    "get_or_create_pr",
    "merge_pr",
]

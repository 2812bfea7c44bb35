"""Tests for the dcs-branch-merger command line."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dcs_branch_merger import main

REPO = "repos/unfoldingWord/en_tn"
USER = "user1-tc-create-1"
REPO_ARGS = ["--owner", "unfoldingWord", "--repo", "en_tn", "--user-branch", USER, "--default-branch", "master"]


@pytest.fixture(autouse=True)
def isolated_process_setup():
    """Keep the CLI away from real .env files and the root logger."""
    with patch("dcs_branch_merger.load_environment_variables", return_value=[]), patch(
        "dcs_branch_merger.configure_logging"
    ):
        yield


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, *args):
    return runner.invoke(main, list(args), env={"DCS_SERVER": "qa.door43.org", "DCS_TOKEN": ""})


class TestCheckCommand:
    """Test `dcs-branch-merger check`."""

    def test_up_to_date(self, runner, fake_dcs, dcs_response_factory):
        fake_dcs.route("GET", f"{REPO}/compare/{USER}...master", dcs_response_factory.compare_response())

        result = invoke(runner, "check", *REPO_ARGS)
        assert result.exit_code == 0, result.output
        status = json.loads(result.output)
        assert status["merge_needed"] is False
        assert status["error"] is False

    def test_user_into_default(self, runner, fake_dcs, dcs_response_factory):
        fake_dcs.route(
            "GET", f"{REPO}/compare/master...{USER}", dcs_response_factory.compare_response([["a"]])
        )
        fake_dcs.route(
            "GET", f"{REPO}/pulls", [dcs_response_factory.pull_request_response(number=7, head=USER, base="master")]
        )

        result = invoke(runner, "check", "--direction", "user-into-default", *REPO_ARGS)
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["pull_request"] == 7

    def test_error_status_exits_non_zero(self, runner, fake_dcs):
        result = invoke(runner, "check", *REPO_ARGS)
        assert result.exit_code == 1
        assert json.loads(result.output)["error"] is True

    def test_server_is_required(self, runner):
        result = runner.invoke(main, ["check", *REPO_ARGS], env={"DCS_SERVER": "", "DCS_TOKEN": ""})
        assert result.exit_code == 2
        assert "No DCS server configured" in result.output


class TestMergeCommand:
    """Test `dcs-branch-merger merge`."""

    def test_merge(self, runner, fake_dcs, dcs_response_factory):
        fake_dcs.route(
            "GET", f"{REPO}/compare/{USER}...master", dcs_response_factory.compare_response([["a"]])
        )
        fake_dcs.route("GET", f"{REPO}/pulls", [dcs_response_factory.pull_request_response(number=5)])
        fake_dcs.route("POST", f"{REPO}/pulls/5/merge", None)

        result = invoke(runner, "merge", *REPO_ARGS, "--description", "Nightly sync")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["message"] == "Merge succeeded"
        assert fake_dcs.calls[-1][2]["json"] == {"Do": "merge", "MergeMessageField": "Nightly sync"}


class TestCheckFileCommand:
    """Test `dcs-branch-merger check-file`."""

    def test_check_file(self, runner, fake_dcs, dcs_response_factory):
        pr = dcs_response_factory.pull_request_response(number=8, merge_base="m1", base_sha="b1")
        fake_dcs.route("GET", f"{REPO}/pulls/8", pr)
        fake_dcs.route(
            "GET", f"{REPO}/compare/m1...b1", dcs_response_factory.compare_response([["tn_GEN.tsv"]])
        )

        result = invoke(runner, "check-file", *REPO_ARGS, "--pr-id", "8", "--filename", "tn_GEN.tsv")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"filename": "tn_GEN.tsv", "updateable": False}

    def test_unknown_pr(self, runner, fake_dcs):
        result = invoke(runner, "check-file", *REPO_ARGS, "--pr-id", "99", "--filename", "x.tsv")
        assert result.exit_code == 1
        assert "pull request #99" in result.output

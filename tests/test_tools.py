"""Tests for the advisor, MCP tool dispatch, and argument validation."""

import asyncio
import json
import threading
from pathlib import Path

import pytest
import yaml
from mcp import types

from gitpolicy import __version__
from gitpolicy.advisor import PolicyAdvisor
from gitpolicy.errors import SafeError
from gitpolicy.git.adapter import GitError
from gitpolicy.git.models import RepositorySnapshot
from gitpolicy.server import build_server, resolve_repo_root
from gitpolicy.tools import TOOL_METADATA, dispatch_tool, validate_tool_arguments


@pytest.fixture
def state():
    """Mutable repository facts served to the advisor."""
    return {"snapshot": RepositorySnapshot("main", True, False), "branches": ["main", "develop"]}


@pytest.fixture
def advisor(tmp_path: Path, state) -> PolicyAdvisor:
    return PolicyAdvisor(
        tmp_path,
        snapshot_provider=lambda: state["snapshot"],
        branch_provider=lambda: list(state["branches"]),
        env={},
    )


class TestAdvisor:
    def test_observes_branch_switch(self, advisor, state):
        assert advisor.evaluate("commit").allowed is False
        state["snapshot"] = RepositorySnapshot("feature/x", True, False)
        assert advisor.evaluate("commit").allowed is True

    def test_status(self, advisor, state):
        state["snapshot"] = RepositorySnapshot("main", False, None)
        status = advisor.status()
        assert status["branch"] == "main"
        assert status["branch_class"] == "protected"
        assert status["is_protected"] is True
        assert status["head_is_merge_commit"] is None
        assert "Working tree has uncommitted changes" in status["warnings"]

    def test_status_unknown_branch(self, advisor, state):
        state["snapshot"] = RepositorySnapshot()
        warnings = advisor.status()["warnings"]
        assert "Current branch could not be determined" in warnings

    def test_update_config_changes_verdicts(self, advisor):
        assert advisor.evaluate("push").allowed is False
        advisor.update_config(allow_direct_push=True)
        assert advisor.evaluate("push").allowed is True

    def test_compliance_propagates_git_error(self, tmp_path: Path):
        def broken():
            raise GitError("not a git repository")

        advisor = PolicyAdvisor(tmp_path, branch_provider=broken, env={})
        with pytest.raises(GitError):
            advisor.compliance()


class TestValidateArguments:
    def test_unknown_tool(self):
        with pytest.raises(SafeError) as exc:
            validate_tool_arguments("git_rules_delete", {})
        assert exc.value.code == "UserInput"
        assert "git_rules_validate" in exc.value.hint

    def test_missing_required(self):
        with pytest.raises(SafeError, match="command") as exc:
            validate_tool_arguments("git_rules_validate", {})
        assert exc.value.message == "Missing required field: command"

    def test_error_str_is_message(self):
        err = SafeError(code="UserInput", message="bad input", hint="try again")
        assert str(err) == "bad input"

    def test_extra_field(self):
        with pytest.raises(SafeError):
            validate_tool_arguments("git_rules_status", {"verbose": True})

    def test_wrong_type(self):
        with pytest.raises(SafeError):
            validate_tool_arguments("git_rules_validate", {"command": "push", "args": "origin"})

    def test_array_item_type(self):
        with pytest.raises(SafeError):
            validate_tool_arguments("git_rules_validate", {"command": "push", "args": [1]})

    def test_nested_step_requires_command(self):
        with pytest.raises(SafeError, match="sequence") as exc:
            validate_tool_arguments("git_rules_simulate", {"sequence": [{"args": []}]})
        assert exc.value.message == "Missing required field: sequence[0].command"

    def test_enum(self):
        with pytest.raises(SafeError):
            validate_tool_arguments("git_workflow_suggest", {"task": "deploy"})

    def test_empty_command(self):
        with pytest.raises(SafeError):
            validate_tool_arguments("git_rules_validate", {"command": ""})

    def test_valid(self):
        validate_tool_arguments(
            "server_config", {"action": "update", "protected_branches": ["main"]}
        )


class TestDispatch:
    def test_validate_denied_is_ok_envelope(self, advisor):
        result = dispatch_tool(advisor, "git_rules_validate", {"command": "commit", "args": ["-m", "feat: x"]})
        assert result["ok"] is True
        assert result["api_version"] == __version__
        assert result["data"]["allowed"] is False
        assert result["data"]["rule"] == "protected-commit"

    def test_simulate(self, advisor):
        result = dispatch_tool(
            advisor,
            "git_rules_simulate",
            {"sequence": [{"command": "status"}, {"command": "push"}, {"command": "commit"}]},
        )
        data = result["data"]
        assert len(data["results"]) == 2
        assert data["first_violation"] == "push"

    def test_simulate_keep_going(self, advisor):
        result = dispatch_tool(
            advisor,
            "git_rules_simulate",
            {"sequence": [{"command": "push"}, {"command": "commit"}], "stop_on_violation": False},
        )
        assert len(result["data"]["results"]) == 2

    def test_status(self, advisor):
        assert dispatch_tool(advisor, "git_rules_status", {})["data"]["branch"] == "main"

    def test_suggest(self, advisor):
        data = dispatch_tool(advisor, "git_workflow_suggest", {"task": "start_feature"})["data"]
        assert data["commands"][0] == "git checkout develop"

    def test_compliance(self, advisor):
        data = dispatch_tool(advisor, "git_rules_compliance", {})["data"]
        assert data["is_compliant"] is False

    def test_compliance_repository_error(self, tmp_path: Path):
        def broken():
            raise GitError("not a git repository")

        advisor = PolicyAdvisor(tmp_path, branch_provider=broken, env={})
        result = dispatch_tool(advisor, "git_rules_compliance", {})
        assert result == {
            "ok": False,
            "code": "Repository",
            "message": "Repository facts are unavailable",
            "hint": "not a git repository",
        }

    def test_config_get(self, advisor):
        data = dispatch_tool(advisor, "server_config", {"action": "get"})["data"]
        assert data["integration_branch"] == "develop"
        assert data["protected_branches"] == ["main", "master"]

    def test_config_update(self, advisor, tmp_path: Path):
        result = dispatch_tool(
            advisor, "server_config", {"action": "update", "integration_branch": "staging"}
        )
        assert result["data"]["integration_branch"] == "staging"
        doc = yaml.safe_load((tmp_path / ".gitpolicy.yaml").read_text())
        assert doc == {"integration_branch": "staging"}

    def test_config_update_without_fields(self, advisor):
        result = dispatch_tool(advisor, "server_config", {"action": "update"})
        assert result["ok"] is False
        assert result["code"] == "UserInput"

    def test_config_update_invalid(self, advisor):
        result = dispatch_tool(
            advisor,
            "server_config",
            {"action": "update", "feature_prefix": "x/", "hotfix_prefix": "x/"},
        )
        assert result["ok"] is False
        assert result["code"] == "Config"

    def test_config_write_failure(self, tmp_path: Path, state):
        advisor = PolicyAdvisor(
            tmp_path / "gone",
            snapshot_provider=lambda: state["snapshot"],
            env={},
        )
        result = dispatch_tool(advisor, "server_config", {"action": "update", "main_branch": "master"})
        assert result["ok"] is False
        assert result["code"] == "Persistence"
        assert "Failed to write" in result["hint"]

    def test_validation_error_envelope(self, advisor):
        result = dispatch_tool(advisor, "git_rules_validate", {"args": []})
        assert result["ok"] is False
        assert result["code"] == "UserInput"
        assert "message" in result

    def test_unexpected_error_is_internal(self, tmp_path: Path):
        def boom():
            raise RuntimeError("kaboom")

        advisor = PolicyAdvisor(tmp_path, snapshot_provider=boom, env={})
        result = dispatch_tool(advisor, "git_rules_status", {})
        assert result == {"ok": False, "code": "Internal", "message": "Tool execution failed"}


class TestServer:
    def test_build_server(self, advisor):
        assert build_server(advisor).name == "gitpolicy"

    def test_every_tool_has_schema(self):
        for meta in TOOL_METADATA.values():
            assert meta["inputSchema"]["type"] == "object"
            assert meta["description"]

    def test_resolve_repo_root_argument(self, tmp_path: Path):
        assert resolve_repo_root(str(tmp_path)) == tmp_path.resolve()

    def test_resolve_repo_root_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("GITPOLICY_REPO_PATH", str(tmp_path))
        assert resolve_repo_root() == tmp_path.resolve()

    def test_call_tool_runs_off_event_loop(self, tmp_path: Path):
        seen = []

        def snapshot():
            seen.append(threading.get_ident())
            return RepositorySnapshot("main", True, False)

        server = build_server(PolicyAdvisor(tmp_path, snapshot_provider=snapshot, env={}))
        handler = server.request_handlers[types.CallToolRequest]
        request = types.CallToolRequest(
            method="tools/call",
            params=types.CallToolRequestParams(name="git_rules_validate", arguments={"command": "push"}),
        )

        async def call():
            return threading.get_ident(), await handler(request)

        loop_thread, response = asyncio.run(call())
        payload = json.loads(response.root.content[0].text)
        assert payload["ok"] is True
        assert payload["data"]["allowed"] is False
        assert seen and seen[0] != loop_thread

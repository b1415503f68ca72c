"""Tool registry and dispatch layer for the MCP server.

Each tool validates its arguments against the declared input schema, calls
the advisor, and returns ``{"ok": True, "data": ...}``. Failures of the tool
itself return the error envelope from ``gitpolicy.errors``; a denied git
command is a successful call whose verdict has ``allowed: false``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict

from gitpolicy import __version__
from gitpolicy.advisor import PolicyAdvisor
from gitpolicy.config.loader import ConfigError
from gitpolicy.config.store import PolicyWriteError
from gitpolicy.errors import (
    SafeError,
    internal_error,
    safe_error_to_result,
    user_input_error,
)
from gitpolicy.git.adapter import GitError
from gitpolicy.rules.models import Step
from gitpolicy.workflow import WORKFLOW_TASKS

logger = logging.getLogger(__name__)

_STRING_ARRAY = {"type": "array", "items": {"type": "string"}}

TOOL_METADATA: Dict[str, Dict[str, Any]] = {
    "git_rules_validate": {
        "description": "Validate a git command (commit, push, merge) against the branching policy.",
        "inputSchema": {
            "type": "object",
            "required": ["command"],
            "properties": {
                "command": {"type": "string", "minLength": 1},
                "args": _STRING_ARRAY,
            },
            "additionalProperties": False,
        },
    },
    "git_rules_simulate": {
        "description": "Simulate a sequence of git commands against the policy without running them.",
        "inputSchema": {
            "type": "object",
            "required": ["sequence"],
            "properties": {
                "sequence": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "required": ["command"],
                        "properties": {
                            "command": {"type": "string", "minLength": 1},
                            "args": _STRING_ARRAY,
                        },
                    },
                },
                "stop_on_violation": {"type": "boolean", "default": True},
            },
            "additionalProperties": False,
        },
    },
    "git_rules_status": {
        "description": "Current branch, working-tree state, and branch class under the policy.",
        "inputSchema": {"type": "object", "properties": {}, "additionalProperties": False},
    },
    "git_rules_compliance": {
        "description": "Check that the configured integration and protected branches exist.",
        "inputSchema": {"type": "object", "properties": {}, "additionalProperties": False},
    },
    "git_workflow_suggest": {
        "description": "Suggest git steps for a workflow task under the current policy.",
        "inputSchema": {
            "type": "object",
            "required": ["task"],
            "properties": {"task": {"type": "string", "enum": list(WORKFLOW_TASKS)}},
            "additionalProperties": False,
        },
    },
    "server_config": {
        "description": "Get or update the branching policy stored in .gitpolicy.yaml.",
        "inputSchema": {
            "type": "object",
            "required": ["action"],
            "properties": {
                "action": {"type": "string", "enum": ["get", "update"]},
                "protected_branches": _STRING_ARRAY,
                "integration_branch": {"type": "string", "minLength": 1},
                "feature_prefix": {"type": "string", "minLength": 1},
                "hotfix_prefix": {"type": "string", "minLength": 1},
                "main_branch": {"type": "string", "minLength": 1},
                "allowed_commit_types": _STRING_ARRAY,
                "allow_direct_push": {"type": "boolean"},
                "require_clean_working_tree": {"type": "boolean"},
                "enforce_commit_message_format": {"type": "boolean"},
                "integration_commit_severity": {"type": "string", "enum": ["info", "warn"]},
            },
            "additionalProperties": False,
        },
    },
}

_TYPES: Dict[str, Any] = {
    "string": str,
    "boolean": bool,
    "array": list,
    "object": dict,
}


def _check_value(field: str, schema: Dict[str, Any], value: Any) -> None:
    expected = schema.get("type")
    if expected is None:
        return
    if not isinstance(value, _TYPES[expected]):
        raise user_input_error(f"Field '{field}' must be of type {expected}")
    if expected == "string":
        min_len = schema.get("minLength")
        if isinstance(min_len, int) and len(value) < min_len:
            raise user_input_error(f"Field '{field}' must be at least {min_len} characters")
        if "enum" in schema and value not in schema["enum"]:
            raise user_input_error(
                f"Field '{field}' must be one of: {', '.join(schema['enum'])}"
            )
    if expected == "array" and "items" in schema:
        for i, item in enumerate(value):
            _check_value(f"{field}[{i}]", schema["items"], item)
    if expected == "object":
        for k in schema.get("required", []):
            if k not in value:
                raise user_input_error(f"Missing required field: {field}.{k}")
        for k, sub in schema.get("properties", {}).items():
            if k in value:
                _check_value(f"{field}.{k}", sub, value[k])


def validate_tool_arguments(tool_name: str, arguments: Dict[str, Any]) -> None:
    """Validate *arguments* against the tool's declared input schema.

    Enforces required fields, additionalProperties=false, basic JSON types,
    string enums and minLength, and array item types. Not a full JSON Schema
    implementation.
    """
    if tool_name not in TOOL_METADATA:
        raise user_input_error(
            f"Unknown tool: {tool_name}",
            hint=f"Available tools: {', '.join(sorted(TOOL_METADATA))}",
        )

    schema = TOOL_METADATA[tool_name]["inputSchema"]
    props: Dict[str, Any] = schema.get("properties", {})

    for k in schema.get("required", []):
        if k not in arguments:
            raise user_input_error(f"Missing required field: {k}")

    if schema.get("additionalProperties", True) is False:
        extras = sorted(k for k in arguments if k not in props)
        if extras:
            raise user_input_error(f"Unexpected fields are not allowed: {', '.join(extras)}")

    for k, field_schema in props.items():
        if k in arguments:
            _check_value(k, field_schema, arguments[k])


# ---- tool implementations ----


def _validate(advisor: PolicyAdvisor, arguments: Dict[str, Any]) -> Any:
    return advisor.evaluate(arguments["command"], arguments.get("args") or []).to_dict()


def _simulate(advisor: PolicyAdvisor, arguments: Dict[str, Any]) -> Any:
    steps = [Step.from_dict(s) for s in arguments["sequence"]]
    stop = arguments.get("stop_on_violation", True)
    return advisor.simulate(steps, stop_on_violation=stop).to_dict()


def _status(advisor: PolicyAdvisor, arguments: Dict[str, Any]) -> Any:
    return advisor.status()


def _compliance(advisor: PolicyAdvisor, arguments: Dict[str, Any]) -> Any:
    return advisor.compliance().to_dict()


def _suggest(advisor: PolicyAdvisor, arguments: Dict[str, Any]) -> Any:
    return advisor.suggest(arguments["task"]).to_dict()


def _config(advisor: PolicyAdvisor, arguments: Dict[str, Any]) -> Any:
    if arguments["action"] == "get":
        return advisor.get_config().to_dict()
    partial = {k: v for k, v in arguments.items() if k != "action"}
    if not partial:
        raise user_input_error("update requires at least one policy field")
    return advisor.update_config(**partial).to_dict()


_TOOL_FUNCS: Dict[str, Callable[[PolicyAdvisor, Dict[str, Any]], Any]] = {
    "git_rules_validate": _validate,
    "git_rules_simulate": _simulate,
    "git_rules_status": _status,
    "git_rules_compliance": _compliance,
    "git_workflow_suggest": _suggest,
    "server_config": _config,
}


def dispatch_tool(advisor: PolicyAdvisor, name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Run tool *name* and return its result envelope. Never raises."""
    try:
        validate_tool_arguments(name, arguments)
        data = _TOOL_FUNCS[name](advisor, arguments)
        return {"ok": True, "api_version": __version__, "data": data}
    except SafeError as err:
        return safe_error_to_result(err)
    except ConfigError as exc:
        return safe_error_to_result(SafeError(code="Config", message=str(exc)))
    except PolicyWriteError as exc:
        logger.error("Policy update failed: %s", exc)
        return safe_error_to_result(
            SafeError(
                code="Persistence",
                message="Failed to write the policy file",
                hint=str(exc),
            )
        )
    except GitError as exc:
        return safe_error_to_result(
            SafeError(
                code="Repository",
                message="Repository facts are unavailable",
                hint=str(exc),
            )
        )
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Tool %s failed", name)
        return internal_error("Tool execution failed")

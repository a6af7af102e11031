"""Hook adapters for Claude Code, Gemini CLI and Copilot CLI.

Each adapter reads one JSON payload from stdin, pulls out the shell command,
and prints a deny decision in that tool's format when the command is blocked.
Allowed commands produce no output. Exit status is always 0.
"""

import json
import logging
import os
import sys
from typing import NamedTuple

from safety_net.analyze import analyze_command
from safety_net.audit import redact_secrets, write_audit_log
from safety_net.config import default_user_config_path, load_config
from safety_net.context import AnalysisContext
from safety_net.env import read_flags, read_temp_trust
from safety_net.format import format_blocked_message

logger = logging.getLogger("safety_net")

MAX_INPUT_BYTES = 10 * 1024 * 1024
REASON_BAD_INPUT = "Failed to parse hook input JSON (strict mode)"


class HookRequest(NamedTuple):
    command: str
    cwd: str | None
    session_id: str | None


def read_hook_input(stream):
    """Read and decode the hook payload.

    Returns None for empty or oversized input. Raises ValueError when the
    payload is not a JSON object.
    """
    raw = stream.read(MAX_INPUT_BYTES + 1)
    if len(raw) > MAX_INPUT_BYTES:
        logger.warning("Hook input exceeds %d bytes, failing open", MAX_INPUT_BYTES)
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    text = raw.strip()
    if not text:
        return None
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"expected JSON object, got {type(data).__name__}")
    return data


def _first_string(data, paths):
    """Return the first non-empty string found along any of *paths* (tuples of keys)."""
    for path in paths:
        value = data
        for key in path:
            value = value.get(key) if isinstance(value, dict) else None
        if isinstance(value, str) and value:
            return value
    return None


_CWD_FIELDS = (("cwd",),)
_SESSION_FIELDS = (("session_id",), ("sessionId",))

_COPILOT_EVENT_FIELDS = (
    ("hookEventName",),
    ("hook_event_name",),
    ("eventName",),
    ("event_name",),
)
_COPILOT_COMMAND_FIELDS = (
    ("toolInput", "command"),
    ("tool_input", "command"),
    ("command",),
)


def _make_request(data, command):
    return HookRequest(
        command, _first_string(data, _CWD_FIELDS), _first_string(data, _SESSION_FIELDS)
    )


def _claude_request(data):
    if data.get("tool_name") != "Bash":
        return None
    command = _first_string(data, (("tool_input", "command"),))
    if not command:
        return None
    return _make_request(data, command)


def _gemini_request(data):
    if data.get("hook_event_name") != "BeforeTool":
        return None
    if data.get("tool_name") != "run_shell_command":
        return None
    command = _first_string(data, (("tool_input", "command"),))
    if not command:
        return None
    return _make_request(data, command)


def _copilot_request(data):
    event = _first_string(data, _COPILOT_EVENT_FIELDS)
    if event and event.lower() != "pretooluse":
        return None
    command = _first_string(data, _COPILOT_COMMAND_FIELDS)
    if not command:
        return None
    return _make_request(data, command)


def _claude_deny(message):
    return {
        "hookSpecificOutput": {
            "hookEventName": "PreToolUse",
            "permissionDecision": "deny",
            "permissionDecisionReason": message,
        }
    }


def _gemini_deny(message):
    # Policy blocks are exit 0 with JSON; exit 2 means the hook itself failed.
    return {"decision": "deny", "reason": message, "systemMessage": message}


def _copilot_deny(message):
    return {"permissionDecision": "deny", "permissionDecisionReason": message}


# mode -> (request extractor, deny payload builder)
HOOK_MODES = {
    "claude-code": (_claude_request, _claude_deny),
    "gemini-cli": (_gemini_request, _gemini_deny),
    "copilot-cli": (_copilot_request, _copilot_deny),
}


def build_context(cwd, environ=None, *, home=None) -> AnalysisContext:
    """Analysis context for a hook call: env flags, temp trust, merged config."""
    flags = read_flags(environ)
    trust = read_temp_trust(environ)
    config = load_config(cwd, user_config_path=default_user_config_path(home))
    kwargs = {}
    if home is not None:
        kwargs["home"] = str(home)
    return AnalysisContext(
        cwd=cwd,
        config=config,
        strict=flags.strict,
        paranoid_rm=flags.paranoid_rm,
        paranoid_interpreters=flags.paranoid_interpreters,
        allow_tmpdir_var=trust.allow_tmpdir_var,
        tmp_dir=trust.tmp_dir,
        **kwargs,
    )


def _emit(stdout, payload):
    stdout.write(json.dumps(payload) + "\n")
    stdout.flush()


def run_hook(mode, stdin=None, stdout=None, environ=None, *, home=None) -> int:
    """Run one hook invocation in *mode* (a key of HOOK_MODES)."""
    stdin = stdin if stdin is not None else sys.stdin.buffer
    stdout = stdout if stdout is not None else sys.stdout
    extract_request, build_deny = HOOK_MODES[mode]

    try:
        data = read_hook_input(stdin)
    except ValueError as e:
        logger.warning("Hook received malformed JSON input: %s", e)
        if read_flags(environ).strict:
            _emit(stdout, build_deny(format_blocked_message(REASON_BAD_INPUT)))
        return 0
    if data is None:
        return 0

    request = extract_request(data)
    if request is None:
        return 0

    cwd = request.cwd or os.getcwd()
    ctx = build_context(cwd, environ, home=home)
    result = analyze_command(request.command, ctx)
    if result is None:
        logger.debug("Allowed: %s", redact_secrets(request.command))
        return 0

    logger.info("BLOCKED: %s | Reason: %s", redact_secrets(request.command), result.reason)
    if request.session_id:
        write_audit_log(
            request.session_id, request.command, result.segment, result.reason, cwd, home_dir=home
        )
    message = format_blocked_message(
        result.reason, request.command, result.segment, redact=redact_secrets
    )
    _emit(stdout, build_deny(message))
    return 0

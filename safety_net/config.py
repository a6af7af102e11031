"""Custom rule configuration: loading, validation, and scope merging.

Two scopes are read:

  user     ~/.cc-safety-net/config.json
  project  <cwd>/.safety-net.json

Both are JSON with ``//`` / ``/* */`` comments and trailing commas allowed.
A project rule with the same name (case-insensitive) as a user rule shadows it.

Example:
{
    "version": 1,
    "rules": [
        {
            "name": "block-rm-rf",
            "command": "rm",
            "block_args": ["-rf"],
            "reason": "No rm -rf."
        }
    ]
}
"""

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger("safety_net")

CONFIG_VERSION = 1
USER_CONFIG_DIR = ".cc-safety-net"
USER_CONFIG_NAME = "config.json"
PROJECT_CONFIG_NAME = ".safety-net.json"

MAX_REASON_LEN = 256

_RULE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]{0,63}$")
_COMMAND_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
# A string literal (kept as is) or a comma directly before a closing bracket.
_TRAILING_COMMA = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[\]}])')


class ConfigError(ValueError):
    """Invalid configuration content; ``issues`` lists each problem found."""

    def __init__(self, issues, source=None):
        self.issues = list(issues)
        self.source = source
        prefix = f"{source}: " if source else ""
        super().__init__(prefix + "; ".join(self.issues))


@dataclass(frozen=True)
class CustomRule:
    name: str
    command: str
    block_args: tuple[str, ...]
    reason: str
    subcommand: str | None = None
    scope: str = "user"


@dataclass(frozen=True)
class Config:
    version: int = CONFIG_VERSION
    rules: tuple[CustomRule, ...] = ()


@dataclass(frozen=True)
class EffectiveRuleSet:
    rules: tuple[CustomRule, ...] = ()
    shadowed: tuple[str, ...] = ()


EMPTY_CONFIG = Config()


def default_user_config_path(home=None):
    return Path(home or Path.home()) / USER_CONFIG_DIR / USER_CONFIG_NAME


def default_project_config_path(cwd):
    return Path(cwd) / PROJECT_CONFIG_NAME


def strip_json_comments(content: str) -> str:
    """Remove ``//`` and ``/* */`` comments and trailing commas outside strings."""
    out = []
    i = 0
    n = len(content)
    in_string = False
    while i < n:
        c = content[i]
        if in_string:
            out.append(c)
            if c == "\\" and i + 1 < n:
                out.append(content[i + 1])
                i += 2
                continue
            if c == '"':
                in_string = False
            i += 1
            continue
        if c == '"':
            in_string = True
            out.append(c)
            i += 1
            continue
        if content.startswith("//", i):
            end = content.find("\n", i)
            i = n if end == -1 else end
            continue
        if content.startswith("/*", i):
            end = content.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue
        out.append(c)
        i += 1
    return _TRAILING_COMMA.sub(lambda m: m.group(1) or m.group(2), "".join(out))


def _validate_rule(entry, index, seen):
    issues = []
    if not isinstance(entry, dict):
        return [f"rules[{index}]: expected object, got {type(entry).__name__}"]
    name = entry.get("name", f"entry {index}")
    pfx = f"rules[{index}] ({name!r})"

    for field in ("name", "command", "reason"):
        if field not in entry:
            issues.append(f"{pfx}: missing required field '{field}'")
        elif not isinstance(entry[field], str):
            issues.append(f"{pfx}: '{field}' must be a string, got {type(entry[field]).__name__}")

    if isinstance(entry.get("name"), str):
        if not _RULE_NAME_RE.match(entry["name"]):
            issues.append(
                f"{pfx}: 'name' must start with a letter and contain only letters, "
                "digits, '-' or '_' (max 64 characters)"
            )
        elif entry["name"].lower() in seen:
            issues.append(f"{pfx}: duplicate rule name (names are case-insensitive)")
        else:
            seen.add(entry["name"].lower())

    if isinstance(entry.get("command"), str) and not _COMMAND_RE.match(entry["command"]):
        issues.append(f"{pfx}: 'command' must be a bare command name, got {entry['command']!r}")

    if entry.get("subcommand") is not None:
        sub = entry["subcommand"]
        if not isinstance(sub, str) or not _COMMAND_RE.match(sub):
            issues.append(f"{pfx}: 'subcommand' must be a bare name, got {sub!r}")

    if "block_args" not in entry:
        issues.append(f"{pfx}: missing required field 'block_args'")
    else:
        block_args = entry["block_args"]
        if not isinstance(block_args, list) or not block_args:
            issues.append(f"{pfx}: 'block_args' must be a non-empty array of strings")
        elif not all(isinstance(a, str) and a for a in block_args):
            issues.append(f"{pfx}: 'block_args' entries must be non-empty strings")

    if isinstance(entry.get("reason"), str):
        if not entry["reason"].strip():
            issues.append(f"{pfx}: 'reason' is empty")
        elif len(entry["reason"]) > MAX_REASON_LEN:
            issues.append(f"{pfx}: 'reason' exceeds {MAX_REASON_LEN} characters")
    return issues


def validate_config(raw) -> list[str]:
    """Validate parsed config JSON. Returns a list of issues (empty when valid)."""
    if not isinstance(raw, dict):
        return [f"expected JSON object, got {type(raw).__name__}"]
    issues = []
    version = raw.get("version")
    if isinstance(version, bool) or version != CONFIG_VERSION:
        issues.append(f"'version' must be {CONFIG_VERSION}, got {version!r}")
    rules = raw.get("rules", [])
    if not isinstance(rules, list):
        issues.append(f"'rules' must be an array, got {type(rules).__name__}")
        return issues
    seen = set()
    for i, entry in enumerate(rules):
        issues.extend(_validate_rule(entry, i, seen))
    return issues


def parse_config(text: str, scope: str = "user", source=None) -> Config:
    """Parse and validate config text. Raises ConfigError on any problem."""
    try:
        raw = json.loads(strip_json_comments(text))
    except json.JSONDecodeError as e:
        raise ConfigError([f"invalid JSON: {e}"], source) from e
    except RecursionError as e:
        raise ConfigError(["invalid JSON: nested too deeply"], source) from e
    issues = validate_config(raw)
    if issues:
        raise ConfigError(issues, source)
    rules = tuple(
        CustomRule(
            name=entry["name"],
            command=entry["command"].lower(),
            subcommand=entry["subcommand"].lower() if entry.get("subcommand") else None,
            block_args=tuple(entry["block_args"]),
            reason=entry["reason"],
            scope=scope,
        )
        for entry in raw.get("rules", [])
    )
    return Config(version=raw["version"], rules=rules)


def read_config_file(path, scope="user"):
    """Read one config file. Returns None when it does not exist.

    Raises ConfigError for invalid content (including bytes that are not
    UTF-8) and OSError for unreadable files.
    """
    path = Path(path)
    if not path.exists():
        return None
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError([f"not valid UTF-8: {e}"], str(path)) from e
    return parse_config(text, scope=scope, source=str(path))


def _load_scope(path, scope):
    try:
        return read_config_file(path, scope) or EMPTY_CONFIG
    except ConfigError as e:
        logger.warning("Ignoring invalid %s config %s: %s", scope, path, "; ".join(e.issues))
    except OSError as e:
        logger.warning("Cannot read %s config %s: %s", scope, path, e)
    return EMPTY_CONFIG


def merge_rule_scopes(user: Config, project: Config) -> EffectiveRuleSet:
    """Combine scopes: user rules first, then project rules.

    A user rule whose name matches a project rule (case-insensitive) is
    dropped and reported in ``shadowed``.
    """
    project_names = {rule.name.lower() for rule in project.rules}
    kept = []
    shadowed = []
    for rule in user.rules:
        if rule.name.lower() in project_names:
            shadowed.append(rule.name)
        else:
            kept.append(rule)
    return EffectiveRuleSet(rules=tuple(kept) + project.rules, shadowed=tuple(shadowed))


def load_effective_rules(cwd=None, *, user_config_path=None, project_config_path=None):
    user_path = user_config_path or default_user_config_path()
    user = _load_scope(user_path, "user")
    project = EMPTY_CONFIG
    if project_config_path is not None:
        project = _load_scope(project_config_path, "project")
    elif cwd:
        project = _load_scope(default_project_config_path(cwd), "project")
    return merge_rule_scopes(user, project)


def load_config(cwd=None, *, user_config_path=None, project_config_path=None) -> Config:
    """Load the merged configuration for *cwd*. Never raises on bad files."""
    effective = load_effective_rules(
        cwd, user_config_path=user_config_path, project_config_path=project_config_path
    )
    return Config(rules=effective.rules)

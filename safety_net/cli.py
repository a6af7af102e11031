"""Command-line entry point: hook modes, config verification, help."""

import logging
import os
import sys
from pathlib import Path

from safety_net import __version__
from safety_net.config import (
    ConfigError,
    default_project_config_path,
    default_user_config_path,
    merge_rule_scopes,
    read_config_file,
)
from safety_net.hooks import run_hook

HELP = f"""cc-safety-net v{__version__}

Blocks destructive git and filesystem commands before execution.

USAGE:
  cc-safety-net -cc, --claude-code       Run as Claude Code PreToolUse hook (reads JSON from stdin)
  cc-safety-net -gc, --gemini-cli        Run as Gemini CLI BeforeTool hook (reads JSON from stdin)
  cc-safety-net -pc, --copilot-cli       Run as Copilot CLI preToolUse hook (reads JSON from stdin)
  cc-safety-net -vc, --verify-config     Validate config files
  cc-safety-net --custom-rules-doc       Print custom rules documentation
  cc-safety-net -h,  --help              Show this help
  cc-safety-net -V,  --version           Show version

ENVIRONMENT VARIABLES:
  SAFETY_NET_STRICT=1                 Fail closed on unparseable commands
  SAFETY_NET_PARANOID=1               Enable all paranoid checks
  SAFETY_NET_PARANOID_RM=1            Block non-temp rm -rf even within cwd
  SAFETY_NET_PARANOID_INTERPRETERS=1  Block interpreter one-liners
  SAFETY_NET_LOG_LEVEL=warning        debug, info, warning, error, or off

CONFIG FILES:
  ~/.cc-safety-net/config.json    User-scope config
  .safety-net.json                Project-scope config"""

CUSTOM_RULES_DOC = """# Custom Rules

Custom rules block extra commands on top of the built-in checks. They are
read from two files:

  ~/.cc-safety-net/config.json   user scope, applies everywhere
  .safety-net.json               project scope, in the working directory

Project rules override user rules with the same name (case-insensitive).
Comments (// and /* */) and trailing commas are allowed.

## Format

{
  "version": 1,
  "rules": [
    {
      "name": "no-force-add",
      "command": "git",
      "subcommand": "add",
      "block_args": ["-f", "--force"],
      "reason": "Files are gitignored for a reason."
    }
  ]
}

## Fields

  name         letters, digits, '-' or '_', starting with a letter (max 64)
  command      command name to match, compared after stripping paths and
               wrappers such as sudo or env
  subcommand   optional; must equal the first non-option argument
  block_args   non-empty list; the rule fires when any argument equals one
               of these exactly (no pattern matching)
  reason       message shown when blocked (max 256 characters)

Custom rules only add restrictions; they cannot allow a command the
built-in checks block. Run `cc-safety-net --verify-config` after editing."""

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_HOOK_FLAGS = [
    (("--claude-code", "-cc"), "claude-code"),
    (("--gemini-cli", "-gc"), "gemini-cli"),
    (("--copilot-cli", "-pc"), "copilot-cli"),
]


def setup_logging(environ=None):
    """Attach a file handler to the ``safety_net`` logger (once per process)."""
    environ = os.environ if environ is None else environ
    logger = logging.getLogger("safety_net")
    if logger.handlers:
        return logger
    level_name = environ.get("SAFETY_NET_LOG_LEVEL", "warning").strip().lower()
    if level_name == "off":
        logger.addHandler(logging.NullHandler())
        return logger
    log_dir = Path.home() / ".cc-safety-net" / "logs"
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_dir / "safety-net.log")
    except OSError:
        logger.addHandler(logging.NullHandler())
        return logger
    handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(_LOG_LEVELS.get(level_name, logging.WARNING))
    return logger


def verify_config(cwd=None, *, home=None):
    """Validate both config scopes and report shadowed rules.

    Returns 0 when every existing config file is valid, 1 otherwise.
    """
    cwd = cwd or os.getcwd()
    scopes = [
        ("user", default_user_config_path(home)),
        ("project", default_project_config_path(cwd)),
    ]
    loaded = {}
    failed = False
    print("Safety Net config:")
    for scope, path in scopes:
        try:
            config = read_config_file(path, scope)
        except ConfigError as e:
            failed = True
            print(f"  ✗ {scope} config {path}:")
            for issue in e.issues:
                print(f"      {issue}")
            continue
        except OSError as e:
            failed = True
            print(f"  ✗ {scope} config {path}: cannot read file: {e}")
            continue
        if config is None:
            print(f"  - {scope} config: not found ({path})")
            continue
        loaded[scope] = config
        print(f"  ✓ {scope} config: {len(config.rules)} rule(s) from {path}")

    if "user" in loaded and "project" in loaded:
        effective = merge_rule_scopes(loaded["user"], loaded["project"])
        for name in effective.shadowed:
            print(f"  ! user rule {name!r} is overridden by a project rule")
    return 1 if failed else 0


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv

    if not args or "--help" in args or "-h" in args:
        print(HELP)
        return 0

    if "--version" in args or "-V" in args:
        print(__version__)
        return 0

    if "--verify-config" in args or "-vc" in args:
        return verify_config()

    if "--custom-rules-doc" in args:
        print(CUSTOM_RULES_DOC)
        return 0

    for flags, mode in _HOOK_FLAGS:
        if any(flag in args for flag in flags):
            setup_logging()
            return run_hook(mode)

    print(f"Unknown option: {args[0]}", file=sys.stderr)
    print("Run 'cc-safety-net --help' for usage.", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())

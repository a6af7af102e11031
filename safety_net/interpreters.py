"""Shell ``-c`` scripts and interpreter one-liners."""

import re
from typing import NamedTuple

from safety_net.shell import normalize_command_token

REASON_INTERPRETER_PARANOID = (
    "Cautious mode: interpreter one-liners are blocked (SAFETY_NET_PARANOID_INTERPRETERS)."
)

SHELL_NAMES = frozenset({"bash", "sh", "zsh", "dash", "ksh", "fish", "mksh", "ash"})

# Interpreter name -> options whose next token is inline code.
_INTERPRETER_CODE_FLAGS = {
    "python": frozenset({"-c"}),
    "node": frozenset({"-e", "--eval", "-p", "--print"}),
    "bun": frozenset({"-e", "--eval", "-p", "--print"}),
    "ruby": frozenset({"-e"}),
    "perl": frozenset({"-e", "-E"}),
    "php": frozenset({"-r"}),
    "lua": frozenset({"-e"}),
}

_INTERPRETER_ALIASES = [
    (re.compile(r"^(python|pypy)[0-9.]*$"), "python"),
    (re.compile(r"^nodejs$"), "node"),
    (re.compile(r"^perl[0-9.]*$"), "perl"),
    (re.compile(r"^ruby[0-9.]*$"), "ruby"),
    (re.compile(r"^php[0-9.]*$"), "php"),
    (re.compile(r"^lua[0-9.]*$"), "lua"),
]

_SHELL_C_OPTION = re.compile(r"^-[a-zA-Z]*c[a-zA-Z]*$")

_RM_OPTS = r"(-[a-zA-Z]+\s+)*"

# Each entry: (label, pattern) matched against interpreter source text.
DANGEROUS_CODE_PATTERNS = [
    ("rm -rf", re.compile(rf"\brm\s+{_RM_OPTS}-[a-zA-Z]*([rR][a-zA-Z]*f|f[a-zA-Z]*[rR])")),
    ("rm -rf", re.compile(rf"\brm\s+{_RM_OPTS}(-[rR]|--recursive)\s+{_RM_OPTS}(-f|--force)\b")),
    ("rm -rf", re.compile(rf"\brm\s+{_RM_OPTS}(-f|--force)\s+{_RM_OPTS}(-[rR]|--recursive)\b")),
    ("git reset --hard", re.compile(r"\bgit\s+reset\s+(\S+\s+)*--hard\b")),
    ("git clean -f", re.compile(r"\bgit\s+clean\s+(\S+\s+)*(-[a-zA-Z]*f|--force)\b")),
    ("git push --force", re.compile(r"\bgit\s+push\s+(\S+\s+)*(--force(?![-\w])|-[a-zA-Z]*f\b)")),
    ("git checkout --", re.compile(r"\bgit\s+checkout\s+(\S+\s+)*--(\s|$)")),
    ("git stash drop/clear", re.compile(r"\bgit\s+stash\s+(drop|clear)\b")),
    ("find -delete", re.compile(r"\bfind\b[^\n;|&]*\s-delete\b")),
]


class ShellInvocation(NamedTuple):
    script: str | None
    before: list[str]
    after: list[str]


def is_shell_c_option(token: str) -> bool:
    """True for ``-c`` and bundled forms such as ``-lc`` or ``-ec``."""
    return bool(_SHELL_C_OPTION.match(token))


def parse_shell_c(tokens: list[str]) -> ShellInvocation | None:
    """Locate ``-c SCRIPT`` in a shell invocation.

    Returns None when no ``-c`` option is present. ``before`` holds the
    tokens between the shell name and ``-c``, ``after`` the positional
    arguments following the script. ``script`` is None for a dangling ``-c``.
    """
    for i in range(1, len(tokens)):
        tok = tokens[i]
        if tok == "--":
            return None
        if is_shell_c_option(tok):
            script = tokens[i + 1] if i + 1 < len(tokens) else None
            return ShellInvocation(script, list(tokens[1:i]), list(tokens[i + 2 :]))
    return None


def interpreter_name(token: str) -> str | None:
    """Canonical interpreter name for *token*, or None if it is not one."""
    name = normalize_command_token(token)
    if name in _INTERPRETER_CODE_FLAGS:
        return name
    for pattern, canonical in _INTERPRETER_ALIASES:
        if pattern.match(name):
            return canonical
    return None


def extract_interpreter_code(tokens: list[str]) -> str | None:
    """Return the inline code passed to an interpreter, if any."""
    name = interpreter_name(tokens[0]) if tokens else None
    if name is None:
        return None
    flags = _INTERPRETER_CODE_FLAGS[name]
    for i in range(1, len(tokens)):
        tok = tokens[i]
        if tok == "--":
            return None
        if tok in flags:
            return tokens[i + 1] if i + 1 < len(tokens) else None
        for flag in flags:
            if flag.startswith("--") and tok.startswith(flag + "="):
                return tok.split("=", 1)[1]
        if not tok.startswith("-"):
            # First positional is a script file; later args belong to it.
            return None
    return None


def analyze_interpreter(tokens: list[str], *, paranoid: bool = False) -> str | None:
    code = extract_interpreter_code(tokens)
    if code is None:
        return None
    if paranoid:
        return REASON_INTERPRETER_PARANOID
    for label, pattern in DANGEROUS_CODE_PATTERNS:
        if pattern.search(code):
            return (
                f"Detected potentially dangerous command in interpreter code: {label}. "
                "Run the shell command directly so it can be checked."
            )
    return None

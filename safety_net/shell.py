"""Shell tokenizing, compound-command splitting, and wrapper stripping.

Not a shell interpreter: variables are never expanded and here-doc bodies are
skipped rather than parsed. The scanner never raises. Unterminated quotes or
substitutions are reported through ``ShellParse.ok`` so strict mode can fail
closed.
"""

import re
from typing import NamedTuple

_ENV_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")

# Two-char operators must be checked before their one-char prefixes.
_CONTROL_OPERATORS = ("&&", "||", "|&", ";;", "&", "|", ";", "\n", "(", ")")

# Longest first so `>>` is not read as two `>`.
_REDIRECT_OPERATORS = ("&>>", "<<<", "<<-", "&>", ">>", ">|", ">&", "<&", "<>", "<<", ">", "<")

_SHELL_KEYWORDS = frozenset({"if", "then", "else", "elif", "while", "until", "do", "!", "{"})


class ShellParse(NamedTuple):
    segments: list[list[str]]
    texts: list[str]
    substitutions: list[list[str]]
    ok: bool


class EnvStrippingResult(NamedTuple):
    tokens: list[str]
    env_assignments: dict[str, str]


class WrapperStrippingResult(NamedTuple):
    tokens: list[str]
    env_assignments: dict[str, str]


_HEREDOC_START = re.compile(r"<<(-?)\s*(['\"]?)([A-Za-z0-9_.-]+)\2")


def _skip_heredoc_lines(text, i, delimiters):
    """Skip here-doc bodies starting at *i*; returns (index, all_terminated)."""
    ok = True
    for delimiter, strip_tabs in delimiters:
        while i < len(text):
            end = text.find("\n", i)
            line = text[i:] if end == -1 else text[i:end]
            i = len(text) if end == -1 else end + 1
            if (line.lstrip("\t") if strip_tabs else line) == delimiter:
                break
        else:
            ok = False
    return i, ok


def _find_closing_paren(text, start):
    """Return the index of the ``)`` closing a group opened just before *start*, or -1."""
    depth = 1
    i = start
    heredocs = []
    while i < len(text):
        c = text[i]
        if c == "<" and text.startswith("<<", i):
            m = _HEREDOC_START.match(text, i)
            if m:
                heredocs.append((m.group(3), bool(m.group(1))))
                i = m.end()
                continue
        if c == "\n" and heredocs:
            i, _ = _skip_heredoc_lines(text, i + 1, heredocs)
            heredocs = []
            continue
        if c == "\\":
            i += 2
            continue
        if c == "'":
            end = text.find("'", i + 1)
            if end == -1:
                return -1
            i = end + 1
            continue
        if c == '"':
            i += 1
            while i < len(text) and text[i] != '"':
                i += 2 if text[i] == "\\" else 1
            i += 1
            continue
        if c == "(":
            depth += 1
        elif c == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _find_closing_backtick(text, start):
    i = start
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == "`":
            return i
        i += 1
    return -1


class _Scanner:
    """Single pass over a command string, building segments as it goes."""

    def __init__(self, command):
        self.command = command
        self.segments = []
        self.texts = []
        self.substitutions = []
        self.ok = True
        self._segment = []
        self._subs = []
        self._seg_start = None
        self._seg_end = 0
        self._word = []
        self._word_start = None
        self._word_quoted = False
        self._drop_next_word = False
        self._heredoc_delimiters = []
        self._capture_heredoc = None

    # ── word / segment bookkeeping ──

    def _start_word(self, i):
        if self._word_start is None:
            self._word_start = i

    def _flush_word(self, end):
        if self._word_start is None:
            return
        word = "".join(self._word)
        start = self._word_start
        self._word = []
        self._word_start = None
        self._word_quoted = False
        if self._seg_start is None:
            self._seg_start = start
        self._seg_end = end
        if self._capture_heredoc is not None:
            delimiter = word
            if self._capture_heredoc == "<<-":
                self._heredoc_delimiters.append((delimiter, True))
            else:
                self._heredoc_delimiters.append((delimiter, False))
            self._capture_heredoc = None
            return
        if self._drop_next_word:
            self._drop_next_word = False
            return
        self._segment.append(word)

    def _end_segment(self):
        if self._segment:
            self.segments.append(self._segment)
            self.texts.append(self.command[self._seg_start : self._seg_end].strip())
            self.substitutions.append(self._subs)
        elif self._subs:
            # `$(cmd)` alone on a line still runs cmd.
            self.segments.append([])
            self.texts.append(self.command[self._seg_start or 0 : self._seg_end].strip())
            self.substitutions.append(self._subs)
        self._segment = []
        self._subs = []
        self._seg_start = None
        self._drop_next_word = False

    def _skip_heredoc_bodies(self, i):
        i, terminated = _skip_heredoc_lines(self.command, i, self._heredoc_delimiters)
        if not terminated:
            self.ok = False
        self._heredoc_delimiters = []
        return i

    # ── quoted regions and substitutions ──

    def _read_substitution(self, i, opener_len):
        """Read ``$(...)`` / ``<(...)`` starting at *i*; returns the index after it."""
        text = self.command
        close = _find_closing_paren(text, i + opener_len)
        if close == -1:
            self.ok = False
            self._subs.append(text[i + opener_len :])
            self._word.append(text[i:])
            return len(text)
        self._subs.append(text[i + opener_len : close])
        self._word.append(text[i : close + 1])
        return close + 1

    def _read_backticks(self, i):
        text = self.command
        close = _find_closing_backtick(text, i + 1)
        if close == -1:
            self.ok = False
            self._subs.append(text[i + 1 :])
            self._word.append(text[i:])
            return len(text)
        self._subs.append(text[i + 1 : close])
        self._word.append(text[i : close + 1])
        return close + 1

    def _read_double_quoted(self, i):
        text = self.command
        j = i + 1
        while j < len(text):
            c = text[j]
            if c == '"':
                return j + 1
            if c == "\\" and j + 1 < len(text):
                nxt = text[j + 1]
                if nxt == "\n":
                    j += 2
                    continue
                if nxt in '"\\$`':
                    self._word.append(nxt)
                    j += 2
                    continue
                self._word.append(c)
                j += 1
                continue
            if c == "$" and text[j + 1 : j + 2] == "(":
                j = self._read_substitution(j, 2)
                continue
            if c == "`":
                j = self._read_backticks(j)
                continue
            self._word.append(c)
            j += 1
        self.ok = False
        return len(text)

    # ── main loop ──

    def scan(self):
        text = self.command
        n = len(text)
        i = 0
        while i < n:
            c = text[i]

            if c in " \t\r":
                self._flush_word(i)
                i += 1
                continue

            if c == "\\":
                if i + 1 >= n:
                    self.ok = False
                    i += 1
                    continue
                if text[i + 1] == "\n":
                    i += 2
                    continue
                self._start_word(i)
                self._word.append(text[i + 1])
                self._word_quoted = True
                i += 2
                continue

            if c == "'":
                self._start_word(i)
                self._word_quoted = True
                end = text.find("'", i + 1)
                if end == -1:
                    self.ok = False
                    self._word.append(text[i + 1 :])
                    i = n
                else:
                    self._word.append(text[i + 1 : end])
                    i = end + 1
                continue

            if c == '"':
                self._start_word(i)
                self._word_quoted = True
                i = self._read_double_quoted(i)
                continue

            if c == "$" and text[i + 1 : i + 2] == "(":
                self._start_word(i)
                i = self._read_substitution(i, 2)
                continue

            if c in "<>" and text[i + 1 : i + 2] == "(" and self._word_start is None:
                self._start_word(i)
                i = self._read_substitution(i, 2)
                continue

            if c == "`":
                self._start_word(i)
                i = self._read_backticks(i)
                continue

            if c == "#" and self._word_start is None:
                end = text.find("\n", i)
                i = n if end == -1 else end
                continue

            redirect = self._match_redirect(i)
            if redirect is not None:
                i = redirect
                continue

            op = next((o for o in _CONTROL_OPERATORS if text.startswith(o, i)), None)
            if op is not None:
                self._flush_word(i)
                self._end_segment()
                i += len(op)
                if op == "\n" and self._heredoc_delimiters:
                    i = self._skip_heredoc_bodies(i)
                continue

            self._start_word(i)
            self._word.append(c)
            i += 1

        self._flush_word(n)
        self._end_segment()
        if self._heredoc_delimiters or self._capture_heredoc is not None:
            self.ok = False
        return ShellParse(self.segments, self.texts, self.substitutions, self.ok)

    def _match_redirect(self, i):
        """Consume a redirection operator at *i*; returns the new index or None."""
        text = self.command
        op = next((o for o in _REDIRECT_OPERATORS if text.startswith(o, i)), None)
        if op is None:
            return None
        pending = "".join(self._word)
        if self._word_start is not None and not (pending.isdigit() and not self._word_quoted):
            # `a>b`: the word before the operator is a real argument.
            self._flush_word(i)
        else:
            # `2>file`: the digits are the fd, not an argument.
            self._word = []
            self._word_start = None
            self._word_quoted = False
        if self._seg_start is None:
            self._seg_start = i
        end = i + len(op)
        self._seg_end = end
        if op in (">&", "<&"):
            m = re.match(r"\d+-?|-", text[end:])
            if m:
                self._seg_end = end + m.end()
                return end + m.end()
        if op in ("<<", "<<-"):
            self._capture_heredoc = op
        else:
            self._drop_next_word = True
        return end


def parse_shell(command: str) -> ShellParse:
    """Tokenize *command* and group tokens into segments.

    Returns segments (token lists), their source text, the inner text of any
    command substitutions seen in each segment, and whether the scan found
    every quote and substitution terminated.
    """
    return _Scanner(command).scan()


def split_shell_commands(command: str) -> list[list[str]]:
    """Split a command on unquoted control operators into token segments."""
    return parse_shell(command).segments


def is_parseable(command: str) -> bool:
    return parse_shell(command).ok


def extract_substitutions(token: str) -> list[str]:
    """Inner command text of each ``$(...)`` and backtick substitution in *token*."""
    found = []
    i = 0
    while i < len(token):
        if token.startswith("$(", i):
            close = _find_closing_paren(token, i + 2)
            end = len(token) if close == -1 else close
            found.append(token[i + 2 : end])
            i = end + 1
        elif token[i] == "`":
            close = _find_closing_backtick(token, i + 1)
            end = len(token) if close == -1 else close
            found.append(token[i + 1 : end])
            i = end + 1
        else:
            i += 1
    return found


def strip_shell_keywords(tokens):
    """Drop leading control keywords (`if`, `then`, `do`, `!`, `{`, ...).

    Splitting on ';' leaves fragments such as ['do', 'rm', '-rf', 'x'];
    the command after the keyword is the one that runs.
    """
    i = 0
    while i < len(tokens) and tokens[i] in _SHELL_KEYWORDS:
        i += 1
    return tokens[i:] if i else tokens


def strip_env_assignments_with_info(tokens: list[str]) -> EnvStrippingResult:
    """Strip leading ``NAME=value`` tokens, recording each assignment."""
    env = {}
    i = 0
    while i < len(tokens) and _ENV_ASSIGNMENT.match(tokens[i]):
        key, _, value = tokens[i].partition("=")
        env[key] = value
        i += 1
    return EnvStrippingResult(list(tokens[i:]), env)


def strip_env_assignments(tokens: list[str]) -> list[str]:
    return strip_env_assignments_with_info(tokens).tokens


# ── Wrapper stripping ──

# Options that consume the following token, per wrapper.
_WRAPPER_VALUE_OPTIONS = {
    "sudo": frozenset(
        {
            "-u", "-g", "-C", "-D", "-h", "-p", "-r", "-t", "-U", "-T", "-R",
            "--user", "--group", "--chdir", "--prompt", "--role", "--type",
            "--other-user", "--host", "--close-from", "--command-timeout",
        }
    ),
    "doas": frozenset({"-u", "-C"}),
    "nice": frozenset({"-n", "--adjustment"}),
    "nohup": frozenset(),
    "time": frozenset({"-f", "--format", "-o", "--output"}),
    "builtin": frozenset(),
    "exec": frozenset({"-a"}),
    "stdbuf": frozenset({"-i", "-o", "-e", "--input", "--output", "--error"}),
    "ionice": frozenset({"-c", "-n", "-p", "-P", "-u", "--class", "--classdata"}),
    "setsid": frozenset(),
}

_ENV_VALUE_OPTIONS = frozenset({"-u", "--unset", "-C", "--chdir", "-P"})
_TIMEOUT_VALUE_OPTIONS = frozenset({"-s", "--signal", "-k", "--kill-after"})


def _skip_options(tokens, i, value_options):
    """Return the index of the first non-option token at or after *i*."""
    while i < len(tokens):
        tok = tokens[i]
        if tok == "--":
            return i + 1
        if not tok.startswith("-") or tok == "-":
            return i
        if tok in value_options:
            i += 2
            continue
        i += 1
    return i


def _split_words(text):
    segments = split_shell_commands(text)
    return segments[0] if segments else []


def _strip_env_wrapper(tokens, env):
    i = 1
    while i < len(tokens):
        tok = tokens[i]
        if tok == "--":
            i += 1
            break
        if tok in ("-S", "--split-string"):
            if i + 1 >= len(tokens):
                return []
            tokens = ["env", *_split_words(tokens[i + 1]), *tokens[i + 2 :]]
            i = 1
            continue
        if tok.startswith("--split-string="):
            tokens = ["env", *_split_words(tok.split("=", 1)[1]), *tokens[i + 1 :]]
            i = 1
            continue
        if tok in _ENV_VALUE_OPTIONS:
            i += 2
            continue
        if tok.startswith("-") and tok != "-":
            i += 1
            continue
        break
    stripped = strip_env_assignments_with_info(tokens[i:])
    env.update(stripped.env_assignments)
    return stripped.tokens


def _strip_command_wrapper(tokens, _env):
    i = 1
    while i < len(tokens) and tokens[i].startswith("-") and tokens[i] != "--":
        if "v" in tokens[i] or "V" in tokens[i]:
            # `command -v rm` only looks the name up.
            return []
        i += 1
    if i < len(tokens) and tokens[i] == "--":
        i += 1
    return tokens[i:]


def _strip_timeout_wrapper(tokens, _env):
    i = _skip_options(tokens, 1, _TIMEOUT_VALUE_OPTIONS)
    # The duration positional precedes the wrapped command.
    return tokens[i + 1 :]


def _strip_busybox_wrapper(tokens, _env):
    return tokens[1:]


def _strip_generic_wrapper(tokens, env):
    head = normalize_command_token(tokens[0])
    i = _skip_options(tokens, 1, _WRAPPER_VALUE_OPTIONS[head])
    stripped = strip_env_assignments_with_info(tokens[i:])
    env.update(stripped.env_assignments)
    return stripped.tokens


_WRAPPER_HANDLERS = {
    "env": _strip_env_wrapper,
    "command": _strip_command_wrapper,
    "timeout": _strip_timeout_wrapper,
    "busybox": _strip_busybox_wrapper,
    **{name: _strip_generic_wrapper for name in _WRAPPER_VALUE_OPTIONS},
}


def strip_wrappers_with_info(tokens: list[str]) -> WrapperStrippingResult:
    """Strip transparent wrappers (sudo, env, timeout, ...) down to the real command.

    Chained wrappers are unwrapped until a non-wrapper head remains. Env
    assignments accepted by a wrapper (``env FOO=bar cmd``, ``sudo FOO=bar
    cmd``) are reported alongside the remaining tokens.
    """
    env = {}
    tokens = list(tokens)
    while tokens:
        handler = _WRAPPER_HANDLERS.get(normalize_command_token(tokens[0]))
        if handler is None:
            break
        tokens = handler(tokens, env)
    return WrapperStrippingResult(tokens, env)


def strip_wrappers(tokens: list[str]) -> list[str]:
    return strip_wrappers_with_info(tokens).tokens


def strip_to_command(tokens):
    """Strip keywords, env assignments and wrappers; returns (tokens, env)."""
    env_result = strip_env_assignments_with_info(strip_shell_keywords(tokens))
    wrapped = strip_wrappers_with_info(env_result.tokens)
    return wrapped.tokens, {**env_result.env_assignments, **wrapped.env_assignments}


# ── Canonicalization ──


def extract_short_opts(tokens: list[str]) -> set[str]:
    """Collect single-letter options from ``-abc`` style clusters, stopping at ``--``."""
    opts = set()
    for tok in tokens:
        if tok == "--":
            break
        if tok.startswith("-") and not tok.startswith("--") and len(tok) > 1:
            opts.update(tok[1:])
    return opts


def get_basename(token: str) -> str:
    return re.split(r"[/\\]", token)[-1]


def normalize_command_token(token: str) -> str:
    """Canonical command name: ``/usr/bin/rm`` and ``RM.exe`` both become ``rm``."""
    name = get_basename(token).lower()
    if name.endswith(".exe"):
        name = name[: -len(".exe")]
    return name

"""find -delete and find -exec detection."""

from safety_net.shell import normalize_command_token

REASON_FIND_DELETE = "find -delete permanently removes files. Use -print first to preview."
REASON_FIND_EXEC_RM = "find -exec rm -rf is dangerous. Use explicit paths instead."

_EXEC_PRIMARIES = frozenset({"-exec", "-execdir", "-ok", "-okdir"})

# Primaries whose next token is a value, so `find -name -delete` matches a file
# literally named "-delete" rather than deleting anything.
_VALUE_PRIMARIES = frozenset(
    {
        "-name", "-iname", "-path", "-ipath", "-wholename", "-iwholename",
        "-regex", "-iregex", "-lname", "-ilname", "-samefile", "-newer",
        "-anewer", "-cnewer", "-user", "-group", "-uid", "-gid", "-perm",
        "-type", "-xtype", "-size", "-links", "-inum", "-mtime", "-mmin",
        "-atime", "-amin", "-ctime", "-cmin", "-used", "-maxdepth",
        "-mindepth", "-fstype", "-context", "-printf", "-fprint",
        "-fprint0", "-fls", "-files0-from", "-regextype",
    }
)


def _exec_end(tokens, start):
    """Index just past the ``;`` or ``{} +`` closing an -exec body starting at *start*."""
    i = start
    while i < len(tokens):
        if tokens[i] == ";":
            return i + 1
        if tokens[i] == "+" and i > start and tokens[i - 1] == "{}":
            return i + 1
        i += 1
    return i


def _walk_primaries(tokens):
    """Yield ``(primary, exec_body)`` pairs; exec_body is None except for -exec style primaries."""
    i = 1
    while i < len(tokens):
        tok = tokens[i]
        if tok in _EXEC_PRIMARIES:
            end = _exec_end(tokens, i + 1)
            body = tokens[i + 1 : end]
            if body and body[-1] in (";", "+"):
                body = body[:-1]
            yield tok, body
            i = end
            continue
        if tok == "-fprintf":
            i += 3
            continue
        if tok in _VALUE_PRIMARIES:
            i += 2
            continue
        yield tok, None
        i += 1


def find_has_delete(tokens: list[str]) -> bool:
    """True when ``-delete`` appears as a real primary (not an option value or exec argument)."""
    return any(primary == "-delete" for primary, _ in _walk_primaries(tokens))


def extract_find_exec_commands(tokens: list[str]) -> list[list[str]]:
    """Commands run by -exec/-execdir/-ok/-okdir, without their terminators."""
    return [body for _, body in _walk_primaries(tokens) if body]


def analyze_find(tokens: list[str]) -> str | None:
    if not tokens or normalize_command_token(tokens[0]) != "find":
        return None
    if "-delete" not in tokens:
        return None
    if find_has_delete(tokens):
        return REASON_FIND_DELETE
    return None

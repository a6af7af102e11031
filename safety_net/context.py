"""Analysis inputs and results shared across the analyzers."""

import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from safety_net.config import EMPTY_CONFIG, Config

# Nesting beyond this (shell -c inside xargs inside $(...) ...) is denied.
MAX_RECURSION_DEPTH = 10

REASON_RECURSION_LIMIT = (
    "Command nesting is too deep to analyze safely. Simplify the command and retry."
)
REASON_STRICT_UNPARSEABLE = "Command could not be parsed (strict mode). Review it manually."


def _default_home():
    return str(Path.home())


@dataclass(frozen=True)
class AnalysisContext:
    """Everything analysis needs besides the command text.

    ``cwd=None`` means the working directory is unknown; rm targets are then
    judged without any cwd exemption. ``original_cwd`` defaults to ``cwd``.
    """

    cwd: str | None = None
    original_cwd: str | None = None
    config: Config = EMPTY_CONFIG
    strict: bool = False
    paranoid_rm: bool = False
    paranoid_interpreters: bool = False
    allow_tmpdir_var: bool = True
    tmpdir_overridden: bool = False
    home: str | None = field(default_factory=_default_home)
    tmp_dir: str | None = field(default_factory=tempfile.gettempdir)

    def __post_init__(self):
        if self.original_cwd is None and self.cwd is not None:
            object.__setattr__(self, "original_cwd", self.cwd)


@dataclass(frozen=True)
class AnalysisResult:
    reason: str
    segment: str

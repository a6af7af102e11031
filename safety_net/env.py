"""Environment flags read by the hook adapters."""

import os
import tempfile
from typing import NamedTuple

_TRUTHY = frozenset({"1", "true", "yes", "on"})

# TMPDIR is only trusted when it lives under one of these.
_KNOWN_TEMP_ROOTS = ("/tmp", "/var/tmp", "/private/tmp", "/private/var/folders", "/var/folders")


class SafetyFlags(NamedTuple):
    strict: bool
    paranoid_rm: bool
    paranoid_interpreters: bool


class TempTrust(NamedTuple):
    tmp_dir: str | None
    allow_tmpdir_var: bool


def env_truthy(name, environ=None):
    environ = os.environ if environ is None else environ
    return environ.get(name, "").strip().lower() in _TRUTHY


def read_flags(environ=None) -> SafetyFlags:
    paranoid = env_truthy("SAFETY_NET_PARANOID", environ)
    return SafetyFlags(
        strict=env_truthy("SAFETY_NET_STRICT", environ),
        paranoid_rm=paranoid or env_truthy("SAFETY_NET_PARANOID_RM", environ),
        paranoid_interpreters=paranoid or env_truthy("SAFETY_NET_PARANOID_INTERPRETERS", environ),
    )


def _under_known_root(path):
    path = os.path.normpath(path)
    return any(path == root or path.startswith(root + "/") for root in _KNOWN_TEMP_ROOTS)


def read_temp_trust(environ=None) -> TempTrust:
    """Decide whether the system temp dir and ``$TMPDIR`` can be trusted.

    With ``TMPDIR=$HOME`` set, ``rm -rf $TMPDIR/project`` would otherwise
    look like a temp path.
    """
    environ = os.environ if environ is None else environ
    tmpdir = environ.get("TMPDIR")
    if tmpdir and not _under_known_root(tmpdir):
        return TempTrust(tmp_dir=None, allow_tmpdir_var=False)
    system_tmp = tempfile.gettempdir()
    return TempTrust(
        tmp_dir=system_tmp if _under_known_root(system_tmp) else None,
        allow_tmpdir_var=True,
    )

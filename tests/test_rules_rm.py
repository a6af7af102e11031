"""Tests for rm -rf target classification."""

import pytest

from safety_net.rules_rm import (
    REASON_RM_RF,
    REASON_RM_RF_PARANOID,
    REASON_RM_RF_ROOT_HOME,
    analyze_rm,
    extract_rm_targets,
    has_recursive_force,
    is_path_within_cwd,
    recursive_force_suffixes,
    is_temp_path,
)

HOME = "/home/user"
CWD = "/home/user/project"


def rm(command, **overrides):
    params = {"cwd": CWD, "original_cwd": CWD, "home": HOME, "tmp_dir": "/tmp"}
    params.update(overrides)
    return analyze_rm(command.split(), **params)


# ═══════════════════════════════════════════════════════════════════════════════
# Option and target parsing
# ═══════════════════════════════════════════════════════════════════════════════


class TestRecursiveForce:
    @pytest.mark.parametrize(
        "tokens, expected",
        [
            (["rm", "-rf"], True),
            (["rm", "-fr"], True),
            (["rm", "-Rf"], True),
            (["rm", "-r", "-f"], True),
            (["rm", "--recursive", "--force"], True),
            (["rm", "-r"], False),
            (["rm", "-f"], False),
            (["rm", "-v"], False),
            (["rm", "--", "-rf"], False),
        ],
        ids=["rf", "fr", "upper-R", "separate", "long", "recursive-only",
             "force-only", "verbose", "after-double-dash"],
    )
    def test_detection(self, tokens, expected):
        assert has_recursive_force(tokens) is expected

    def test_suffixes_match_per_position_check(self):
        tokens = "rm -r x -f -- rm -rf y -- -f z --recursive --force".split()
        expected = [has_recursive_force(tokens[i:]) for i in range(len(tokens))]
        assert recursive_force_suffixes(tokens) == expected
        assert recursive_force_suffixes(tokens)[:6] == [True, True, False, False, False, True]

    def test_targets(self):
        assert extract_rm_targets(["rm", "-rf", "a", "--", "-b"]) == ["a", "-b"]

    def test_targets_skip_empty(self):
        assert extract_rm_targets(["rm", "-rf", "", "a"]) == ["a"]


class TestPathClassification:
    @pytest.mark.parametrize(
        "target, expected",
        [
            ("/tmp", True),
            ("/tmp/build", True),
            ("/var/tmp/x", True),
            ("$TMPDIR/x", True),
            ("${TMPDIR}/x", True),
            ("/tmpfoo", False),
            ("/tmp/../etc", False),
            ("/etc", False),
        ],
        ids=["tmp", "under-tmp", "var-tmp", "tmpdir-var", "tmpdir-braced",
             "prefix-only", "dot-dot", "etc"],
    )
    def test_is_temp_path(self, target, expected):
        assert is_temp_path(target) is expected

    def test_trusted_tmp_dir(self):
        tmp = "/private/var/folders/xy/T"
        assert is_temp_path(tmp + "/foo", tmp_dir=tmp)
        assert not is_temp_path("/private/var/other", tmp_dir=tmp)

    def test_tmp_dir_root_is_ignored(self):
        assert not is_temp_path("/etc", tmp_dir="/")

    def test_tmpdir_var_untrusted(self):
        assert not is_temp_path("$TMPDIR/x", allow_tmpdir_var=False)

    @pytest.mark.parametrize(
        "target, expected",
        [
            ("build", True),
            ("./a/b", True),
            (CWD + "/dist", True),
            ("../other", False),
            (".", False),
            ("~/project/x", False),
            ("$PWD/x", False),
        ],
        ids=["relative", "nested", "absolute-inside", "sibling", "cwd-itself",
             "tilde", "variable"],
    )
    def test_is_path_within_cwd(self, target, expected):
        assert is_path_within_cwd(target, CWD) is expected


# ═══════════════════════════════════════════════════════════════════════════════
# Decisions
# ═══════════════════════════════════════════════════════════════════════════════


class TestAnalyzeRm:
    @pytest.mark.parametrize(
        "command, expected",
        [
            ("rm -rf /", REASON_RM_RF_ROOT_HOME),
            ("rm -rf /*", REASON_RM_RF_ROOT_HOME),
            ("rm -rf ~", REASON_RM_RF_ROOT_HOME),
            ("rm -rf ~/", REASON_RM_RF_ROOT_HOME),
            ("rm -rf $HOME/*", REASON_RM_RF_ROOT_HOME),
            ("rm -rf ${HOME}", REASON_RM_RF_ROOT_HOME),
            ("rm -rf -- /", REASON_RM_RF_ROOT_HOME),
            ("rm -rf .", REASON_RM_RF),
            ("rm -rf ../project", REASON_RM_RF),
            ("rm -rf /etc", REASON_RM_RF),
            ("rm -r -f /etc", REASON_RM_RF),
            ("rm --recursive --force /etc", REASON_RM_RF),
            ("rm -rf ../other", REASON_RM_RF),
            ("rm -rf /tmp/../etc", REASON_RM_RF),
            ("rm -rf build /etc", REASON_RM_RF),
        ],
        ids=[
            "root",
            "root-glob",
            "tilde",
            "tilde-slash",
            "home-var-glob",
            "home-braced",
            "root-after-double-dash",
            "dot",
            "cwd-via-parent",
            "etc",
            "separate-flags",
            "long-flags",
            "sibling",
            "temp-escape",
            "one-bad-target",
        ],
    )
    def test_denied(self, command, expected):
        assert rm(command) == expected

    @pytest.mark.parametrize(
        "command",
        [
            "rm -rf build",
            "rm -rf ./dist node_modules",
            "rm -rf /tmp/build",
            "rm -rf /var/tmp/cache",
            "rm -rf $TMPDIR/x",
            "rm -r /etc",
            "rm -f /etc/hosts",
            "rm file.txt",
            "rm -- -rf",
            "ls -rf /",
        ],
        ids=[
            "within-cwd",
            "multiple-within",
            "tmp",
            "var-tmp",
            "tmpdir-var",
            "no-force",
            "no-recursive",
            "plain",
            "flag-like-target",
            "not-rm",
        ],
    )
    def test_allowed(self, command):
        assert rm(command) is None

    def test_paranoid_blocks_within_cwd(self):
        assert rm("rm -rf build", paranoid=True) == REASON_RM_RF_PARANOID

    def test_paranoid_still_allows_temp(self):
        assert rm("rm -rf /tmp/x", paranoid=True) is None

    def test_paranoid_outside_cwd_uses_plain_reason(self):
        assert rm("rm -rf /etc", paranoid=True) == REASON_RM_RF

    def test_overridden_tmpdir_not_trusted(self):
        assert rm("rm -rf $TMPDIR/x", tmpdir_overridden=True) == REASON_RM_RF
        assert rm("rm -rf $TMPDIR/x", allow_tmpdir_var=False) == REASON_RM_RF

    def test_unknown_cwd_only_allows_temp(self):
        assert rm("rm -rf build", cwd=None, original_cwd=None) == REASON_RM_RF
        assert rm("rm -rf /tmp/x", cwd=None, original_cwd=None) is None

    def test_home_as_cwd(self):
        assert rm("rm -rf build", cwd=HOME, original_cwd=HOME) == REASON_RM_RF_ROOT_HOME
        assert rm("rm -rf /tmp/x", cwd=HOME, original_cwd=HOME) is None

    def test_relative_target_resolves_against_effective_cwd(self):
        assert rm("rm -rf build", cwd=CWD + "/sub") is None
        assert rm("rm -rf build", cwd="/etc") == REASON_RM_RF

"""Tests for find -delete and -exec extraction."""

import pytest

from safety_net.rules_find import (
    REASON_FIND_DELETE,
    analyze_find,
    extract_find_exec_commands,
    find_has_delete,
)


class TestFindDelete:
    @pytest.mark.parametrize(
        "tokens, expected",
        [
            (["find", ".", "-delete"], REASON_FIND_DELETE),
            (["find", ".", "-name", "*.pyc", "-delete"], REASON_FIND_DELETE),
            (["/usr/bin/find", "/tmp", "-type", "f", "-delete"], REASON_FIND_DELETE),
            (["find", ".", "-name", "-delete"], None),
            (["find", ".", "-exec", "echo", "-delete", ";"], None),
            (["find", ".", "-print"], None),
            (["grep", "-delete"], None),
        ],
        ids=[
            "bare-delete",
            "after-name",
            "absolute-find",
            "name-value",
            "exec-argument",
            "print",
            "not-find",
        ],
    )
    def test_analyze(self, tokens, expected):
        assert analyze_find(tokens) == expected

    def test_fprintf_consumes_file_and_format(self):
        assert not find_has_delete(["find", ".", "-fprintf", "out", "-delete", "-print"])


class TestFindExec:
    def test_exec_semicolon(self):
        tokens = ["find", ".", "-name", "*.tmp", "-exec", "rm", "-rf", "{}", ";"]
        assert extract_find_exec_commands(tokens) == [["rm", "-rf", "{}"]]

    def test_execdir_plus(self):
        tokens = ["find", ".", "-execdir", "git", "status", "{}", "+"]
        assert extract_find_exec_commands(tokens) == [["git", "status", "{}"]]

    def test_multiple_bodies(self):
        tokens = ["find", ".", "-exec", "a", "{}", ";", "-ok", "b", "{}", ";"]
        assert extract_find_exec_commands(tokens) == [["a", "{}"], ["b", "{}"]]

    def test_unterminated_body(self):
        assert extract_find_exec_commands(["find", ".", "-exec", "rm", "-rf"]) == [["rm", "-rf"]]

    def test_no_exec(self):
        assert extract_find_exec_commands(["find", ".", "-print"]) == []

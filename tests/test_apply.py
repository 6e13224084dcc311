import os
import stat
import tempfile

import pytest

import csv_replace.apply as engine
from csv_replace.apply import apply_script, apply_to_file, parse_command, parse_script
from csv_replace.errors import SubstitutionError
from csv_replace.escape import compile_rules
from csv_replace.rules.load_rules import ReplacementRule


def _commands(pairs, delimiter="|"):
    rules = [ReplacementRule(s, r) for s, r in pairs]
    return parse_script(compile_rules(rules, delimiter), delimiter)


def _run(text, pairs, delimiter="|"):
    out, _ = apply_script(text, _commands(pairs, delimiter))
    return out


def test_global_replacement():
    assert _run("foo bar foo", [("foo", "baz")]) == "baz bar baz"


def test_period_is_literal():
    assert _run("a.b", [("a.b", "X")]) == "X"
    assert _run("axb", [("a.b", "X")]) == "axb"


def test_empty_replacement_deletes_every_occurrence():
    out = _run("cat concat catalog", [("cat", "")])
    assert "cat" not in out
    assert out == " con alog"


def test_rules_apply_sequentially():
    assert _run("a", [("a", "b"), ("b", "c")]) == "c"


def test_reverse_rules_do_not_restore_original():
    forward = [("a", "b"), ("b", "c")]
    backward = [("c", "b"), ("b", "a")]
    once = _run("ab", forward)
    assert once == "cc"
    assert _run(once, backward) == "aa"


def test_rerun_is_not_idempotent_when_output_reintroduces_pattern():
    rules = [("x", "xy")]
    first = _run("x", rules)
    assert first == "xy"
    assert _run(first, rules) == "xyy"


def test_rerun_is_idempotent_without_overlap():
    rules = [("foo", "baz")]
    first = _run("foo bar", rules)
    assert _run(first, rules) == first


def test_regex_and_replacement_specials_are_literal():
    assert _run("(a+b)*? {1}", [("(a+b)*? {1}", "ok")]) == "ok"
    assert _run("^start$ [x]", [("^start$", "S"), ("[x]", "Y")]) == "S Y"
    assert _run("Q", [("Q", "R&D")]) == "R&D"
    assert _run("asepb", [("sep", "\\")]) == "a\\b"
    assert _run("c:\\dir", [("\\", "/")]) == "c:/dir"


def test_delimiter_in_rules():
    assert _run("a|b", [("a|b", "x|y")]) == "x|y"
    assert _run("a/b", [("a/b", "c/d")], delimiter="/") == "c/d"
    assert _run("a#b", [("#", "&")], delimiter="#") == "a&b"


def test_counts_per_rule():
    _, counts = apply_script("aaa b", _commands([("a", "x"), ("b", "y"), ("z", "")]))
    assert counts == [3, 1, 0]


@pytest.mark.parametrize("line", [
    "x|a|b|g",
    "s|a|b",
    "s|a|b|i",
    "s||b|g",
    "s|a\\",
    "s|(|x|g",
])
def test_invalid_commands_raise(line):
    with pytest.raises(SubstitutionError):
        parse_command(line)


def test_apply_to_file_replaces_atomically(tmp_path):
    target = tmp_path / "app.conf"
    target.write_bytes(b"foo\r\nbar foo\r\n")
    os.chmod(target, 0o640)

    counts = apply_to_file(str(target), _commands([("foo", "baz")]))

    assert counts == [2]
    assert target.read_bytes() == b"baz\r\nbar baz\r\n"
    assert stat.S_IMODE(os.stat(target).st_mode) == 0o640
    assert sorted(p.name for p in tmp_path.iterdir()) == ["app.conf"]


def test_apply_to_file_keeps_undecodable_bytes(tmp_path):
    target = tmp_path / "latin.txt"
    target.write_bytes(b"caf\xe9 foo\r\n\xff\xfe")

    assert apply_to_file(str(target), _commands([("foo", "bar")])) == [1]
    assert target.read_bytes() == b"caf\xe9 bar\r\n\xff\xfe"


def test_undecodable_rule_matches_same_bytes(tmp_path):
    target = tmp_path / "latin.txt"
    target.write_bytes(b"un caf\xe9")
    search = b"caf\xe9".decode("utf-8", "surrogateescape")

    apply_to_file(str(target), _commands([(search, "coffee")]))
    assert target.read_bytes() == b"un coffee"


def test_apply_to_file_failure_leaves_target_untouched(tmp_path, monkeypatch):
    target = tmp_path / "data.txt"
    target.write_bytes(b"foo foo")

    def refuse(src, dst):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(engine.os, "replace", refuse)
    with pytest.raises(SubstitutionError):
        apply_to_file(str(target), _commands([("foo", "bar")]))

    assert target.read_bytes() == b"foo foo"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["data.txt"]


def test_staging_descriptor_closed_when_fdopen_fails(tmp_path, monkeypatch):
    target = tmp_path / "data.txt"
    target.write_bytes(b"foo")
    opened = []
    real_mkstemp = tempfile.mkstemp

    def recording_mkstemp(*args, **kwargs):
        fd, name = real_mkstemp(*args, **kwargs)
        opened.append(fd)
        return fd, name

    def failing_fdopen(*args, **kwargs):
        raise OSError(24, "Too many open files")

    monkeypatch.setattr(engine.tempfile, "mkstemp", recording_mkstemp)
    monkeypatch.setattr(engine.os, "fdopen", failing_fdopen)
    with pytest.raises(SubstitutionError):
        apply_to_file(str(target), _commands([("foo", "bar")]))

    with pytest.raises(OSError):
        os.fstat(opened[0])
    assert target.read_bytes() == b"foo"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["data.txt"]

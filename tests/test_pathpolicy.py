"""Tests for the path policy."""

import pytest

from npmcache.core import InvalidPathError, PathPolicy, is_bad
from npmcache.core.pathpolicy import PACK_POLICY, UNPACK_POLICY, is_within

STRICT = PathPolicy()
DOUBLE_DOT = PathPolicy(allow_double_dot=True)


@pytest.mark.parametrize(
    "allow_double_dot, path, expected",
    [
        # rejected, double dots not allowed
        (False, "/evil1.txt", True),
        (False, "../evil2.txt", True),
        (False, "a/../../evil.txt", True),
        (False, "C:/Users/Public/evil3.txt", True),
        (False, "C:|Users/Public/evil4.txt", True),
        (False, "<", True),
        (False, "<foo", True),
        (False, " <foo2", True),
        (False, "bar>", True),
        (False, "COM1>", True),
        (False, "com3", True),
        (False, "LpT7", True),
        (False, "LPT3", True),
        (False, "COM9", True),
        (False, "win\\separator", True),
        (False, "CON", True),
        (False, "NUL", True),
        (False, "dir/aux", True),
        (False, " Spaceman", True),
        (False, "C:\\Users\\Public\\evil5.txt", True),
        (False, "tab\there", True),
        (False, "new\nline", True),
        (False, "", True),
        # rejected, double dots allowed
        (True, "/../evil_double_dots_6.txt", True),
        (True, "/../evil_double_dots_61..txt", True),
        # accepted, double dots not allowed
        (False, "kissa7.txt", False),
        (False, "foo/bar//double_dots71.txt", False),
        (False, "evil11..txt", False),
        (False, "COM0", False),
        (False, "COM", False),
        (False, "Hello dolly", False),
        (False, "node_modules/.bin/tsc", False),
        # accepted, double dots allowed
        (True, "../double_dots8.txt", False),
        (True, "double_dots9..txt", False),
        (True, "LPT0", False),
        (True, "LPT", False),
        (True, "COMA", False),
        (True, "CONAIR", False),
        (True, "NULL", False),
        (True, "Program Files/my app.exe", False),
    ],
)
def test_is_bad(allow_double_dot, path, expected):
    policy = PathPolicy(allow_double_dot=allow_double_dot)
    assert is_bad(path, policy) is expected
    assert policy.is_bad(path) is expected


@pytest.mark.parametrize("path", ["../x", "a/../b", "a/b/..", ".."])
def test_double_dot_segment_toggles_with_policy(path):
    assert STRICT.is_bad(path)
    assert not DOUBLE_DOT.is_bad(path)


def test_absolute_paths_can_be_allowed():
    policy = PathPolicy(allow_absolute_paths=True)
    assert STRICT.is_bad("/usr/lib/x")
    assert not policy.is_bad("/usr/lib/x")


def test_every_bad_character_is_rejected():
    for char in '<>:"*?\\|!@#$%^&()+={}[],`~':
        assert STRICT.is_bad(f"name{char}"), char


def test_permitted_characters_are_accepted():
    policy = STRICT.with_permitted_characters("@")
    assert STRICT.is_bad("node_modules/@babel/core")
    assert not policy.is_bad("node_modules/@babel/core")
    assert policy.is_bad("node_modules/#private")


def test_presets():
    assert PACK_POLICY.allow_double_dot
    assert not PACK_POLICY.allow_absolute_paths
    assert UNPACK_POLICY == PathPolicy()


# ============================================================================
# Symlink targets
# ============================================================================


@pytest.mark.parametrize(
    "link, target",
    [
        ("hello2.txt", "hello.txt"),
        ("hello_subdir_1.txt", "subdir/hello.txt"),
        ("subdir/hello_parent_1.txt", "../hello.txt"),
        ("a/b/c", "../../x"),
    ],
)
def test_link_targets_inside_root(link, target, tmp_path):
    assert STRICT.check_link_target(link, target, tmp_path) is None


@pytest.mark.parametrize(
    "link, target",
    [
        ("subdir/evil_parent_0.txt", "../../hello.txt"),
        ("evil_parent_1.txt", "../evil.txt"),
        ("evil_parent_2.txt", "./../evil.txt"),
        ("evil_abs_1.txt", "/evil.txt"),
        ("evil_abs_2.txt", "/etc/passwd"),
        ("evil_abs_win_1.txt", "C:/Users/Public/evil.txt"),
        ("evil_abs_win_2.txt", "C:|Users/Public/evil.txt"),
        ("evil_abs_win_3.txt", "C:\\Users\\Public\\evil2.txt"),
        ("evil_win_dev_1.txt", "COM1>"),
        ("evil_win_dev_2.txt", "CON"),
        ("evil_win_dev_3.txt", "NUL"),
        ("empty", ""),
    ],
)
def test_evil_link_targets(link, target, tmp_path):
    with pytest.raises(InvalidPathError, match="invalid path"):
        STRICT.check_link_target(link, target, tmp_path)


def test_outside_root_link_is_a_warning_when_allowed(tmp_path):
    policy = PathPolicy(allow_links_outside_root=True)
    warning = policy.check_link_target("outside_link", "../outside_cwd", tmp_path)
    assert warning is not None
    assert "outside root" in warning


def test_absolute_link_is_a_warning_when_allowed(tmp_path):
    policy = PathPolicy(allow_absolute_paths=True, allow_links_outside_root=True)
    warning = policy.check_link_target("abs_link", "/etc/passwd", tmp_path)
    assert warning is not None

    # inside the root an absolute target only warns about being absolute
    inside = policy.check_link_target("abs_link", str(tmp_path / "x"), tmp_path)
    assert inside is not None
    assert "absolute" in inside


def test_is_within():
    assert is_within("/a/b", "/a")
    assert is_within("/a", "/a")
    assert not is_within("/ab", "/a")
    assert not is_within("/", "/a")
    assert is_within("/x", "/")

import os

import pytest

from lfslite.modules.errors import HookError, InstallError
from lfslite.modules.hooks import HookDispatcher, HookPoint

from conftest import write_hook


@pytest.fixture
def recipe_path(write_recipe):
    return write_recipe()


def test_hook_receives_three_paths(recipe_path, tmp_path):
    out = tmp_path / "args.txt"
    write_hook(recipe_path, "post_install", f'echo "$1|$2|$3|$(pwd -P)" > "{out}"')
    worktree = tmp_path / "wt"
    worktree.mkdir()

    d = HookDispatcher(os.path.dirname(recipe_path))
    assert d.run(HookPoint.POST_INSTALL, str(worktree), "/rootfs", "/staging") is True
    wt, rootfs, staging, cwd = out.read_text().strip().split("|")
    assert (wt, rootfs, staging) == (str(worktree), "/rootfs", "/staging")
    assert os.path.realpath(cwd) == os.path.realpath(str(worktree))


def test_absent_hook_is_skipped(recipe_path):
    d = HookDispatcher(os.path.dirname(recipe_path))
    assert not d.available(HookPoint.PRE_INSTALL)
    assert d.run("pre_install", "/wt", "/rootfs", "/staging") is False


def test_non_executable_hook_is_skipped(recipe_path, tmp_path):
    out = tmp_path / "ran"
    write_hook(recipe_path, "install", f'touch "{out}"', executable=False)
    d = HookDispatcher(os.path.dirname(recipe_path))
    assert d.run(HookPoint.INSTALL, "/wt", "/rootfs", "/staging") is False
    assert not out.exists()


def test_failing_hook(recipe_path):
    write_hook(recipe_path, "pre_install", "exit 3")
    d = HookDispatcher(os.path.dirname(recipe_path))
    with pytest.raises(HookError, match="rc=3"):
        d.run(HookPoint.PRE_INSTALL, "/wt", "/rootfs", "/staging")
    with pytest.raises(InstallError):
        d.run(HookPoint.PRE_INSTALL, "/wt", "/rootfs", "/staging", error=InstallError)


def test_failing_hook_non_fatal(recipe_path):
    write_hook(recipe_path, "post_remove", "exit 1")
    d = HookDispatcher(os.path.dirname(recipe_path))
    assert d.run(HookPoint.POST_REMOVE, "/wt", "/rootfs", "/staging", fatal=False) is False


def test_unknown_hook_point(recipe_path):
    d = HookDispatcher(os.path.dirname(recipe_path))
    with pytest.raises(ValueError):
        d.path("pre_remove")

import json
import os
from unittest.mock import Mock

import pytest

from lfslite.modules.buildsystem import BuildDriver
from lfslite.modules.errors import InstallError
from lfslite.modules.install import (
    diff_snapshots,
    install_package,
    snapshot_tree,
    walk_tree,
)
from lfslite.modules.remove import remove_package

from conftest import write_hook


def _binary_ctx(make_ctx, **kwargs):
    ctx = make_ctx(binaries=["/usr/bin/hello"], **kwargs)
    os.makedirs(ctx.worktree)
    src = os.path.join(ctx.worktree, "hello")
    with open(src, "w") as f:
        f.write("#!/bin/sh\necho hello\n")
    os.chmod(src, 0o755)
    return ctx


def test_walk_tree_is_preorder_and_sorted(tmp_path):
    for rel in ("b/z", "b/a", "a"):
        p = tmp_path / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text("x")
    (tmp_path / "c").symlink_to("b")
    assert walk_tree(str(tmp_path)) == ["/a", "/b", "/c", "/b/a", "/b/z"]


def test_walk_tree_never_lists_top(tmp_path):
    assert walk_tree(str(tmp_path)) == []


def test_snapshot_and_diff(tmp_path):
    (tmp_path / "usr").mkdir()
    before = snapshot_tree(str(tmp_path))
    (tmp_path / "usr" / "bin").mkdir()
    (tmp_path / "usr" / "bin" / "hello").write_text("x")
    after = snapshot_tree(str(tmp_path))
    assert after == sorted(after)
    assert diff_snapshots(before, after) == ["/usr/bin", "/usr/bin/hello"]


def test_staged_install(make_ctx, registry):
    ctx = _binary_ctx(make_ctx)
    res = install_package(ctx, registry)

    assert res.manifest == ["/usr", "/usr/bin", "/usr/bin/hello"]
    assert res.count == 3
    assert os.access(os.path.join(ctx.rootfs, "usr/bin/hello"), os.X_OK)
    assert registry.read_manifest("hello") == res.manifest

    meta = registry.read_meta("hello")
    assert meta["name"] == "hello"
    assert meta["version"] == "1.0"
    assert meta["strategy"] == "staged"
    assert meta["recipe"] == ctx.recipe.path
    assert meta["installed_at"]


def test_staging_is_emptied_before_install(make_ctx, registry):
    ctx = _binary_ctx(make_ctx)
    os.makedirs(os.path.join(ctx.staging, "leftover"))
    res = install_package(ctx, registry)
    assert "/leftover" not in res.manifest
    assert not os.path.exists(os.path.join(ctx.rootfs, "leftover"))


def test_direct_install_excludes_existing_paths(make_ctx, registry):
    ctx = _binary_ctx(make_ctx, install_strategy="direct")
    os.makedirs(os.path.join(ctx.rootfs, "usr"))
    res = install_package(ctx, registry)
    assert res.strategy == "direct"
    assert res.manifest == ["/usr/bin", "/usr/bin/hello"]
    assert not os.path.exists(ctx.staging)


def test_missing_binary_registers_nothing(make_ctx, registry):
    ctx = make_ctx(binaries=["/usr/bin/hello"])
    os.makedirs(ctx.worktree)
    with pytest.raises(InstallError):
        install_package(ctx, registry)
    assert not registry.is_installed("hello")


def test_pre_install_failure(make_ctx, registry):
    ctx = _binary_ctx(make_ctx)
    write_hook(ctx.recipe.path, "pre_install", "exit 1")
    with pytest.raises(InstallError):
        install_package(ctx, registry)
    assert not registry.is_installed("hello")
    assert not os.path.exists(os.path.join(ctx.rootfs, "usr"))


def test_install_hook_runs_after_placement(make_ctx, registry, tmp_path):
    ctx = _binary_ctx(make_ctx)
    out = tmp_path / "seen"
    write_hook(ctx.recipe.path, "install", f'ls "$2/usr/bin" > "{out}"')
    install_package(ctx, registry)
    assert out.read_text().split() == ["hello"]


def test_build_system_install_uses_staging_as_destdir(make_ctx, registry):
    ctx = make_ctx()
    os.makedirs(ctx.worktree)

    def fake_install(destdir=None):
        os.makedirs(os.path.join(destdir, "usr/share/doc"))
        open(os.path.join(destdir, "usr/share/doc/README"), "w").close()

    driver = Mock(spec=BuildDriver)
    driver.install.side_effect = fake_install
    res = install_package(ctx, registry, driver)

    driver.install.assert_called_once_with(destdir=ctx.staging)
    assert res.manifest == ["/usr", "/usr/share", "/usr/share/doc", "/usr/share/doc/README"]
    with open(registry.meta_path("hello")) as f:
        assert json.load(f)["files"] == 4


def test_build_system_direct_install_has_no_destdir(make_ctx, registry):
    ctx = make_ctx(install_strategy="direct")
    os.makedirs(ctx.worktree)
    driver = Mock(spec=BuildDriver)
    install_package(ctx, registry, driver)
    driver.install.assert_called_once_with(destdir=None)


def _driver_creating(*relpaths):
    def fake_install(destdir=None):
        for rel in relpaths:
            path = os.path.join(destdir, rel)
            os.makedirs(os.path.dirname(path), exist_ok=True)
            open(path, "w").close()
    driver = Mock(spec=BuildDriver)
    driver.install.side_effect = fake_install
    return driver


def test_newline_in_file_name_aborts_before_merge(make_ctx, registry):
    ctx = make_ctx()
    os.makedirs(ctx.worktree)
    os.makedirs(os.path.join(ctx.rootfs, "etc"))
    passwd = os.path.join(ctx.rootfs, "etc", "passwd")
    open(passwd, "w").close()

    with pytest.raises(InstallError, match="quebra de linha"):
        install_package(ctx, registry, _driver_creating("usr/bin/x\n/etc/passwd"))

    assert not registry.is_installed("hello")
    assert not os.path.exists(os.path.join(ctx.rootfs, "usr"))
    assert os.path.isfile(passwd)


def test_undecodable_file_name_is_registered_and_removable(cfg, make_ctx, registry):
    name = os.fsdecode(b"usr/share/caf\xe9")
    ctx = make_ctx()
    os.makedirs(ctx.worktree)

    res = install_package(ctx, registry, _driver_creating(name))

    assert res.manifest == ["/usr", "/usr/share", "/" + name]
    assert registry.read_manifest("hello") == res.manifest
    assert os.path.isfile(os.path.join(os.fsencode(ctx.rootfs), b"usr/share/caf\xe9"))

    remove_package("hello", cfg, registry)
    assert os.listdir(ctx.rootfs) == []

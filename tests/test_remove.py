import os

import pytest

from lfslite.modules.context import BuildContext
from lfslite.modules.errors import NotInstalledError
from lfslite.modules.install import install_package
from lfslite.modules.recipe import load_recipe
from lfslite.modules.remove import _target, remove_package

from conftest import write_hook


@pytest.fixture
def install_binary(cfg, write_recipe, registry):
    """Instala uma receita com binaries em /usr/bin/<name>"""
    def _install(name):
        path = write_recipe(name=name, binaries=[f"/usr/bin/{name}"])
        ctx = BuildContext(load_recipe(path), cfg)
        os.makedirs(ctx.worktree)
        with open(os.path.join(ctx.worktree, name), "w") as f:
            f.write(name)
        install_package(ctx, registry)
        return ctx
    return _install


def test_shared_directories_are_kept(cfg, registry, install_binary):
    install_binary("foo")
    install_binary("bar")

    res = remove_package("foo", cfg, registry)

    assert not os.path.exists(os.path.join(cfg.rootfs, "usr/bin/foo"))
    assert os.path.isfile(os.path.join(cfg.rootfs, "usr/bin/bar"))
    assert res.removed == ["/usr/bin/foo"]
    assert res.kept == ["/usr/bin", "/usr"]
    assert not registry.is_installed("foo")
    assert registry.is_installed("bar")


def test_last_owner_removes_directories(cfg, registry, install_binary):
    install_binary("foo")
    remove_package("foo", cfg, registry)
    assert os.listdir(cfg.rootfs) == []


def test_second_removal_fails(cfg, registry, install_binary):
    install_binary("foo")
    remove_package("foo", cfg, registry)
    with pytest.raises(NotInstalledError):
        remove_package("foo", cfg, registry)


def test_missing_file_is_tolerated(cfg, registry, install_binary):
    install_binary("foo")
    os.remove(os.path.join(cfg.rootfs, "usr/bin/foo"))
    res = remove_package("foo", cfg, registry)
    assert res.failed == []
    assert not registry.is_installed("foo")


def test_post_remove_failure_is_not_fatal(cfg, registry, install_binary):
    ctx = install_binary("foo")
    write_hook(ctx.recipe.path, "post_remove", "exit 1")
    remove_package("foo", cfg, registry)
    assert not registry.is_installed("foo")


def test_post_remove_hook_runs(cfg, registry, install_binary, tmp_path):
    ctx = install_binary("foo")
    out = tmp_path / "removed"
    write_hook(ctx.recipe.path, "post_remove", f'touch "{out}"')
    remove_package("foo", cfg, registry)
    assert out.exists()


def test_entries_escaping_rootfs_are_skipped(cfg, registry, tmp_path):
    os.makedirs(cfg.rootfs)
    outside = tmp_path / "outside.txt"
    outside.write_text("keep")
    elsewhere = tmp_path / "elsewhere"
    elsewhere.mkdir()
    (elsewhere / "secret").write_text("keep")
    os.symlink(str(elsewhere), os.path.join(cfg.rootfs, "link"))

    registry.write("evil", ["/../outside.txt", "/link/secret", "/"], {"name": "evil"})
    res = remove_package("evil", cfg, registry)

    assert outside.exists()
    assert (elsewhere / "secret").exists()
    assert res.removed == []
    assert not registry.is_installed("evil")


def test_target_with_system_root():
    assert _target("/", "/usr/bin") == "/usr/bin"
    assert _target("/", "/") is None
    assert _target("/mnt/lfs", "/usr/../../etc/passwd") is None

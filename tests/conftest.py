import os
import tarfile

import pytest
import yaml

from lfslite.modules.config import Config
from lfslite.modules.context import BuildContext
from lfslite.modules.recipe import load_recipe
from lfslite.modules.registry import PackageRegistry


@pytest.fixture
def cfg(tmp_path):
    return Config(
        rootfs=str(tmp_path / "rootfs"),
        recipes_dir=str(tmp_path / "recipes"),
        work_dir=str(tmp_path / "work"),
        dist_dir=str(tmp_path / "dist"),
        build_dir=str(tmp_path / "build"),
        db_dir=str(tmp_path / "db"),
        log_dir=str(tmp_path / "logs"),
        jobs=2,
        fakeroot="no",
        color="never",
        tools_dir=str(tmp_path / "tools"),
    )


@pytest.fixture
def registry(cfg):
    return PackageRegistry(cfg.db_dir)


@pytest.fixture
def write_recipe(cfg):
    """Grava <recipes>/<category>/<name>/<name>.recipe e retorna o caminho"""
    def _write(name="hello", version="1.0", category="base", **fields):
        data = {"name": name, "version": version}
        data["source"] = {"url": f"https://example.com/{name}-{version}.tar.gz"}
        data.update(fields)
        pkg_dir = os.path.join(cfg.recipes_dir, category, name)
        os.makedirs(pkg_dir, exist_ok=True)
        path = os.path.join(pkg_dir, f"{name}.recipe")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f)
        return path
    return _write


@pytest.fixture
def make_ctx(cfg, write_recipe):
    def _make(**kwargs):
        return BuildContext(load_recipe(write_recipe(**kwargs)), cfg)
    return _make


def write_hook(recipe_path, point, body, executable=True):
    hooks_dir = os.path.join(os.path.dirname(recipe_path), "hooks")
    os.makedirs(hooks_dir, exist_ok=True)
    path = os.path.join(hooks_dir, point)
    with open(path, "w", encoding="utf-8") as f:
        f.write("#!/bin/sh\n" + body + "\n")
    os.chmod(path, 0o755 if executable else 0o644)
    return path


def make_source_tarball(dest, top, files):
    """Cria um .tar.gz com todos os arquivos sob o diretório `top`"""
    src = os.path.join(os.path.dirname(dest), "_src", top)
    for rel, content in files.items():
        full = os.path.join(src, rel)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(full, 0o755)
    os.makedirs(os.path.dirname(dest), exist_ok=True)
    with tarfile.open(dest, "w:gz") as tar:
        tar.add(src, arcname=top)
    return dest

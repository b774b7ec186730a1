import os
from unittest.mock import Mock, patch

import pytest

from lfslite.modules import build as build_mod
from lfslite.modules import utils
from lfslite.modules.buildsystem import BuildDriver, BuildState
from lfslite.modules.errors import IntegrityError

from conftest import make_source_tarball


def _binary_recipe_ctx(make_ctx, **source):
    ctx = make_ctx(binaries=["/usr/bin/hello"], **source)
    make_source_tarball(ctx.artifact, "hello-1.0", {"hello": "#!/bin/sh\necho hello\n"})
    return ctx


def test_build_and_install_offline(make_ctx, registry):
    ctx = _binary_recipe_ctx(make_ctx)
    with patch.object(utils, "download") as mock_dl:
        res = build_mod.build_and_install(ctx, registry)
    mock_dl.assert_not_called()
    assert res.manifest == ["/usr", "/usr/bin", "/usr/bin/hello"]
    assert os.path.isfile(os.path.join(ctx.rootfs, "usr/bin/hello"))
    assert registry.is_installed("hello")


def test_checksum_failure_stops_pipeline(make_ctx, registry):
    ctx = make_ctx(binaries=["/usr/bin/hello"])
    ctx.recipe.sha256 = "f" * 64
    make_source_tarball(ctx.artifact, "hello-1.0", {"hello": "x"})
    with pytest.raises(IntegrityError):
        build_mod.build_and_install(ctx, registry)
    assert not os.path.exists(ctx.worktree)
    assert not registry.is_installed("hello")


def test_binaries_recipe_skips_build_system(make_ctx):
    ctx = make_ctx(binaries=["/usr/bin/hello"])
    driver = Mock(spec=BuildDriver)
    assert build_mod.configure_sources(ctx, driver) is BuildState.UNCONFIGURED
    assert build_mod.compile_sources(ctx, driver) is BuildState.UNCONFIGURED
    driver.configure.assert_not_called()
    driver.compile.assert_not_called()


def test_build_only_runs_stages_in_order(make_ctx):
    ctx = make_ctx()
    calls = []
    driver = Mock(spec=BuildDriver)
    driver.configure.side_effect = lambda: calls.append("configure")
    driver.compile.side_effect = lambda: calls.append("compile")

    with patch.object(build_mod, "fetch_sources", side_effect=lambda c: calls.append("fetch")), \
            patch.object(build_mod, "extract_sources", side_effect=lambda c: calls.append("extract")), \
            patch.object(build_mod, "apply_patches", side_effect=lambda c: calls.append("patch")):
        build_mod.build_only(ctx, driver)

    assert calls == ["fetch", "extract", "patch", "configure", "compile"]

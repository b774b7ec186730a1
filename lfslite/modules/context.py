# context.py
"""
Layout de diretórios de uma construção: WorkingTree, subdiretório de build,
StagingArea e artefato no cache, todos derivados de (Recipe, Config).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from lfslite.modules.config import Config
from lfslite.modules.hooks import HookDispatcher
from lfslite.modules.recipe import Recipe


@dataclass
class BuildContext:
    recipe: Recipe
    config: Config

    @property
    def worktree(self) -> str:
        # checkouts git são atualizados no lugar, nunca recriados
        if self.recipe.is_vcs:
            return os.path.join(self.config.work_dir, f"{self.recipe.name}-src")
        return os.path.join(self.config.work_dir, self.recipe.package_id)

    @property
    def build_subdir(self) -> str:
        return os.path.join(self.worktree, "build")

    @property
    def staging(self) -> str:
        return os.path.join(self.config.build_dir, self.recipe.package_id)

    @property
    def rootfs(self) -> str:
        return self.config.rootfs

    @property
    def artifact(self) -> Optional[str]:
        name = self.recipe.archive_name
        return os.path.join(self.config.dist_dir, name) if name else None

    @property
    def hooks(self) -> HookDispatcher:
        return HookDispatcher(self.recipe.recipe_dir)

    def run_hook(self, point, fatal: bool = True, error=None) -> bool:
        """Dispara um hook com os três caminhos padrão (worktree, rootfs, staging)"""
        kwargs = {"fatal": fatal}
        if error is not None:
            kwargs["error"] = error
        return self.hooks.run(point, self.worktree, self.rootfs, self.staging, **kwargs)

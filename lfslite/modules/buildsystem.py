#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
buildsystem.py — configure/compile/install por sistema de build

Estratégias (conjunto fechado, selecionado por Recipe.build_system):
  - autotools: <src>/configure --prefix=/usr   (em <src>/build)
  - cmake:     cmake -S <src> -B <src>/build -DCMAKE_INSTALL_PREFIX=/usr
  - meson:     meson setup <src>/build <src> --prefix=/usr
               compila e instala com ninja (não make): meson gera build.ninja,
               e o -j<jobs> configurado é repassado ao ninja
  - make:      sem configure, compila na raiz da fonte

BuildDriver mantém a máquina de estados unconfigured → configured → built,
persistida em arquivos-carimbo na WorkingTree para que invocações separadas
da CLI (configure, depois build) enxerguem o mesmo estado. Uma nova extração
recria a WorkingTree e portanto zera o estado.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Dict, List, Optional, Tuple, Type

from lfslite.modules import log, utils
from lfslite.modules.context import BuildContext
from lfslite.modules.errors import BuildError, InstallError, LfsliteError
from lfslite.modules.hooks import HookPoint
from lfslite.modules.recipe import BuildSystem

logger = log.get_logger("buildsystem")

PREFIX = "/usr"


class BuildState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    BUILT = "built"


# ---------------------------------------------------------------------------
# Estratégias
# ---------------------------------------------------------------------------
class BuildStrategy:
    system: BuildSystem
    uses_build_dir = True

    def build_dir(self, ctx: BuildContext) -> str:
        return ctx.build_subdir if self.uses_build_dir else ctx.worktree

    def configure_command(self, ctx: BuildContext) -> Optional[List[str]]:
        raise NotImplementedError

    def build_command(self, ctx: BuildContext, jobs: int) -> List[str]:
        return ["make", f"-j{jobs}", *ctx.recipe.make_options]

    def install_command(self, ctx: BuildContext, destdir: Optional[str]) -> Tuple[List[str], Dict[str, str]]:
        cmd = ["make"]
        if destdir:
            cmd.append(f"DESTDIR={destdir}")
        return cmd + ["install", *ctx.recipe.install_options], {}


class Autotools(BuildStrategy):
    system = BuildSystem.AUTOTOOLS

    def configure_command(self, ctx):
        script = os.path.join(ctx.worktree, "configure")
        return [script, f"--prefix={PREFIX}", *ctx.recipe.configure_options]


class CMake(BuildStrategy):
    system = BuildSystem.CMAKE

    def configure_command(self, ctx):
        return [
            "cmake", "-S", ctx.worktree, "-B", ctx.build_subdir,
            f"-DCMAKE_INSTALL_PREFIX={PREFIX}", "-DCMAKE_BUILD_TYPE=Release",
            *ctx.recipe.configure_options,
        ]


class Meson(BuildStrategy):
    system = BuildSystem.MESON

    def configure_command(self, ctx):
        return ["meson", "setup", ctx.build_subdir, ctx.worktree,
                f"--prefix={PREFIX}", *ctx.recipe.configure_options]

    # meson gera build.ninja, não Makefile
    def build_command(self, ctx, jobs):
        return ["ninja", f"-j{jobs}", *ctx.recipe.make_options]

    def install_command(self, ctx, destdir):
        env = {"DESTDIR": destdir} if destdir else {}
        return ["ninja", "install", *ctx.recipe.install_options], env


class MakeOnly(BuildStrategy):
    system = BuildSystem.MAKE
    uses_build_dir = False

    def configure_command(self, ctx):
        return None


STRATEGIES: Dict[BuildSystem, BuildStrategy] = {
    s.system: s for s in (Autotools(), CMake(), Meson(), MakeOnly())
}


def get_strategy(system: BuildSystem) -> BuildStrategy:
    try:
        return STRATEGIES[BuildSystem(system)]
    except (KeyError, ValueError):
        raise BuildError(f"BUILD_SYSTEM desconhecido: {system}")


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------
class BuildDriver:
    STAMPS = {
        BuildState.CONFIGURED: ".lfslite-configured",
        BuildState.BUILT: ".lfslite-built",
    }

    def __init__(self, ctx: BuildContext, jobs: Optional[int] = None):
        self.ctx = ctx
        self.strategy = get_strategy(ctx.recipe.build_system)
        self.jobs = jobs or ctx.config.jobs

    @property
    def build_dir(self) -> str:
        return self.strategy.build_dir(self.ctx)

    def _stamp(self, state: BuildState) -> str:
        return os.path.join(self.ctx.worktree, self.STAMPS[state])

    @property
    def state(self) -> BuildState:
        if os.path.exists(self._stamp(BuildState.BUILT)):
            return BuildState.BUILT
        if os.path.exists(self._stamp(BuildState.CONFIGURED)):
            return BuildState.CONFIGURED
        return BuildState.UNCONFIGURED

    def _set_state(self, state: BuildState) -> None:
        for s, name in self.STAMPS.items():
            path = os.path.join(self.ctx.worktree, name)
            if s is state:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(self.ctx.recipe.package_id + "\n")
            elif s is BuildState.BUILT and os.path.exists(path):
                os.remove(path)
        logger.debug("Estado de %s: %s", self.ctx.recipe.package_id, state.value)

    def _run(self, cmd: List[str], cwd: str, error: Type[LfsliteError],
             extra_env: Optional[Dict[str, str]] = None) -> None:
        env = utils.with_env(**extra_env) if extra_env else None
        rc, _ = utils.run(cmd, cwd=cwd, env=env, check=False)
        if rc != 0:
            raise error(f"{os.path.basename(cmd[0])} falhou (rc={rc}) em {cwd}")

    def _require_worktree(self) -> None:
        if not os.path.isdir(self.ctx.worktree):
            raise BuildError(f"WorkingTree inexistente: {self.ctx.worktree} (execute extract antes)")

    def configure(self) -> BuildState:
        """pre_configure, depois hook configure (se houver) ou a estratégia"""
        self._require_worktree()
        ctx = self.ctx
        ctx.run_hook(HookPoint.PRE_CONFIGURE, error=BuildError)

        if self.strategy.uses_build_dir:
            utils.ensure_dir(ctx.build_subdir)

        if ctx.hooks.available(HookPoint.CONFIGURE):
            ctx.run_hook(HookPoint.CONFIGURE, error=BuildError)
        else:
            cmd = self.strategy.configure_command(ctx)
            if cmd is None:
                logger.info("BUILD_SYSTEM=%s (sem configure)", self.strategy.system.value)
            else:
                logger.info("Configurando %s (%s)", ctx.recipe.package_id, self.strategy.system.value)
                self._run(cmd, cwd=self.build_dir, error=BuildError)

        self._set_state(BuildState.CONFIGURED)
        return BuildState.CONFIGURED

    def compile(self) -> BuildState:
        self._require_worktree()
        if self.state is BuildState.UNCONFIGURED:
            raise BuildError(f"{self.ctx.recipe.package_id} não configurado (execute configure antes)")
        logger.info("Compilando (%d jobs)", self.jobs)
        self._run(self.strategy.build_command(self.ctx, self.jobs), cwd=self.build_dir, error=BuildError)
        self._set_state(BuildState.BUILT)
        return BuildState.BUILT

    def install(self, destdir: Optional[str] = None) -> None:
        """make install (com DESTDIR quando destdir é dado); falha → InstallError"""
        if self.state is not BuildState.BUILT:
            raise InstallError(f"{self.ctx.recipe.package_id} não compilado (execute build antes)")
        cmd, extra_env = self.strategy.install_command(self.ctx, destdir)
        logger.info("Instalando %s (%s)", self.ctx.recipe.package_id,
                    f"DESTDIR={destdir}" if destdir else "direto")
        self._run(cmd, cwd=self.build_dir, error=InstallError, extra_env=extra_env)

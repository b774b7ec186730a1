# build.py
"""
Orquestrador do pipeline do lfslite.

Fases, sempre sequenciais e na mesma invocação:
  fetch → extract → patch → configure → compile → install

Cada fase bloqueia até o processo externo terminar; qualquer erro é fatal e
interrompe o pipeline sem limpeza automática (WorkingTree e staging ficam
para inspeção). Repetir o subcomando é seguro: fetch/extract são
idempotentes e build/install rodam de novo sobre uma WorkingTree descartável.
"""

from __future__ import annotations

from typing import Optional

from lfslite.modules import log
from lfslite.modules.buildsystem import BuildDriver, BuildState
from lfslite.modules.context import BuildContext
from lfslite.modules.extract import extract_sources
from lfslite.modules.fetch import fetch_sources
from lfslite.modules.install import InstallResult, install_package
from lfslite.modules.patches import apply_patches
from lfslite.modules.registry import PackageRegistry

logger = log.get_logger("build")


def fetch_stage(ctx: BuildContext) -> str:
    logger.info("Fase: fetch")
    return fetch_sources(ctx)


def extract_stage(ctx: BuildContext) -> str:
    logger.info("Fase: extract")
    return extract_sources(ctx)


def patch_stage(ctx: BuildContext):
    logger.info("Fase: patch")
    return apply_patches(ctx)


def configure_sources(ctx: BuildContext, driver: Optional[BuildDriver] = None) -> BuildState:
    logger.info("Fase: configure")
    if ctx.recipe.binaries:
        logger.info("Receita com binaries, sem sistema de build")
        return BuildState.UNCONFIGURED
    return (driver or BuildDriver(ctx)).configure()


def compile_sources(ctx: BuildContext, driver: Optional[BuildDriver] = None) -> BuildState:
    logger.info("Fase: compile")
    if ctx.recipe.binaries:
        logger.info("Receita com binaries, nada a compilar")
        return BuildState.UNCONFIGURED
    return (driver or BuildDriver(ctx)).compile()


def build_only(ctx: BuildContext, driver: Optional[BuildDriver] = None) -> None:
    """fetch → extract → patch → configure → compile, sem instalar"""
    driver = driver or BuildDriver(ctx)
    fetch_stage(ctx)
    extract_stage(ctx)
    patch_stage(ctx)
    configure_sources(ctx, driver)
    compile_sources(ctx, driver)
    logger.info("Build finalizado com sucesso: %s", ctx.recipe.package_id)


def build_and_install(ctx: BuildContext, registry: PackageRegistry,
                      driver: Optional[BuildDriver] = None) -> InstallResult:
    """Pipeline completo; o pacote só é registrado se todas as fases passarem"""
    driver = driver or BuildDriver(ctx)
    build_only(ctx, driver)
    logger.info("Fase: install")
    return install_package(ctx, registry, driver)

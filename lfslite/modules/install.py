# install.py
"""
Instalação e derivação do manifesto.

Duas estratégias, escolhidas pela receita:

staged (padrão)
    A ação de instalação escreve em uma StagingArea privada como se fosse a
    raiz real (DESTDIR). O manifesto é a listagem da StagingArea, capturada
    ANTES do merge, na árvore intocada: o que é registrado é exatamente o que
    vai ser copiado. Depois a árvore inteira é mesclada no rootfs (cp -a, sob
    fakeroot/proot quando disponível).

direct
    Para sistemas de build sem prefixo relocável. Lista o rootfs inteiro
    (ordenado) antes e depois da ação; o manifesto é a diferença
    depois − antes, na ordem ordenada. Modificações concorrentes no rootfs
    corrompem essa diferença, e arquivos que já existiam e foram
    sobrescritos não entram no manifesto.

Receitas com `binaries` não usam sistema de build: cada caminho declarado é
copiado (pelo basename) da WorkingTree para o mesmo caminho absoluto sob a
StagingArea ou sob o rootfs, e segue a mesma derivação de manifesto.

Uma falha na ação de instalação aborta antes de qualquer registro.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import List, Optional

from lfslite.modules import fakeroot, log, utils
from lfslite.modules.buildsystem import BuildDriver
from lfslite.modules.context import BuildContext
from lfslite.modules.errors import InstallError
from lfslite.modules.hooks import HookPoint
from lfslite.modules.registry import PackageRegistry, check_manifest

logger = log.get_logger("install")


@dataclass
class InstallResult:
    name: str
    version: str
    strategy: str
    manifest: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.manifest)


def _raise(err: OSError):
    raise err


# ---------------------------------------------------------------------------
# Listagens
# ---------------------------------------------------------------------------
def walk_tree(top: str) -> List[str]:
    """
    Lista, relativo a top e com '/' inicial, todo arquivo, link simbólico e
    diretório abaixo de top. Diretórios aparecem antes do seu conteúdo; links
    nunca são seguidos; top em si não entra.
    """
    out = []
    for dirpath, dirnames, filenames in os.walk(top, onerror=_raise):
        dirnames.sort()
        rel = os.path.relpath(dirpath, top)
        base = "" if rel == "." else "/" + rel.replace(os.sep, "/")
        for name in sorted(dirnames + filenames):
            out.append(f"{base}/{name}")
    return out


def snapshot_tree(root: str) -> List[str]:
    """
    Listagem ordenada de root (relativa, com '/' inicial), sem atravessar
    pontos de montagem (como find -xdev).
    """
    if not os.path.isdir(root):
        return []
    root_dev = os.lstat(root).st_dev
    out = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
        rel = os.path.relpath(dirpath, root)
        base = "" if rel == "." else "/" + rel.replace(os.sep, "/")
        for name in dirnames + filenames:
            out.append(f"{base}/{name}")
        # lista o ponto de montagem mas não desce nele
        dirnames[:] = [d for d in dirnames
                       if os.lstat(os.path.join(dirpath, d)).st_dev == root_dev]
    out.sort()
    return out


def diff_snapshots(before: List[str], after: List[str]) -> List[str]:
    """after − before, preservando a ordem de after"""
    seen = set(before)
    return [p for p in after if p not in seen]


def capture_staged_manifest(staging: str) -> List[str]:
    return walk_tree(staging)


# ---------------------------------------------------------------------------
# Ação de instalação
# ---------------------------------------------------------------------------
def copy_binaries(ctx: BuildContext, dest_root: str) -> List[str]:
    """Copia cada binário declarado da WorkingTree para dest_root/<caminho>"""
    copied = []
    for b in ctx.recipe.binaries:
        src = os.path.join(ctx.worktree, os.path.basename(b))
        if not os.path.lexists(src):
            raise InstallError(f"Binário {os.path.basename(b)} não encontrado em {ctx.worktree}")
        dst = os.path.join(dest_root, b.lstrip("/"))
        try:
            utils.copy_file(src, dst)
        except OSError as e:
            raise InstallError(f"Falha ao copiar {src} → {dst}: {e}") from e
        logger.debug("%s → %s", src, dst)
        copied.append(dst)
    return copied


def _place_files(ctx: BuildContext, dest_root: str, driver: Optional[BuildDriver]) -> None:
    if ctx.recipe.binaries:
        copy_binaries(ctx, dest_root)
        return
    driver = driver or BuildDriver(ctx)
    destdir = dest_root if ctx.recipe.staged else None
    try:
        driver.install(destdir=destdir)
    except OSError as e:
        raise InstallError(f"Falha na instalação de {ctx.recipe.package_id}: {e}") from e


def _install_staged(ctx: BuildContext, driver: Optional[BuildDriver]) -> List[str]:
    staging = ctx.staging
    try:
        utils.empty_dir(staging)
    except OSError as e:
        raise InstallError(f"Não foi possível preparar a staging {staging}: {e}") from e

    _place_files(ctx, staging, driver)

    manifest = capture_staged_manifest(staging)
    # antes do merge: nada chega ao rootfs sem poder ser removido depois
    check_manifest(manifest)
    if not manifest:
        logger.warning("Staging %s vazia após a instalação", staging)
    fakeroot.merge_tree(staging, ctx.rootfs, mode=ctx.config.fakeroot)
    return manifest


def _install_direct(ctx: BuildContext, driver: Optional[BuildDriver]) -> List[str]:
    before = snapshot_tree(ctx.rootfs)
    _place_files(ctx, ctx.rootfs, driver)
    after = snapshot_tree(ctx.rootfs)
    manifest = diff_snapshots(before, after)
    check_manifest(manifest)
    if not manifest:
        logger.warning("Nenhum caminho novo em %s após a instalação direta", ctx.rootfs)
    return manifest


def install_package(ctx: BuildContext, registry: PackageRegistry,
                    driver: Optional[BuildDriver] = None) -> InstallResult:
    """
    pre_install → arquivos no lugar → hook install → registro → post_install.
    Retorna o InstallResult com o manifesto gravado.
    """
    recipe = ctx.recipe
    utils.ensure_dir(ctx.rootfs)

    ctx.run_hook(HookPoint.PRE_INSTALL, error=InstallError)

    if recipe.staged:
        manifest = _install_staged(ctx, driver)
    else:
        manifest = _install_direct(ctx, driver)

    ctx.run_hook(HookPoint.INSTALL, error=InstallError)

    meta = {
        "name": recipe.name,
        "version": recipe.version,
        "installed_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        "recipe": recipe.path,
        "strategy": recipe.install_strategy.value,
        "files": len(manifest),
    }
    try:
        registry.write(recipe.name, manifest, meta)
    except (OSError, ValueError) as e:
        raise InstallError(f"Falha ao gravar o registro de {recipe.name}: {e}") from e

    ctx.run_hook(HookPoint.POST_INSTALL, error=InstallError)

    logger.info("Instalado %s %s (%d arquivos) %s", recipe.name, recipe.version,
                len(manifest), registry.manifest_path(recipe.name))
    return InstallResult(recipe.name, recipe.version, recipe.install_strategy.value, manifest)

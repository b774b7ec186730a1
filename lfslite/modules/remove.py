# remove.py
"""
Remoção baseada no manifesto.

O manifesto é a única autoridade: nada fora dele é apagado. As entradas são
processadas em ordem inversa (conteúdo antes do diretório que o contém).
Diretórios só são removidos se vazios; um diretório não vazio ainda pertence
a este ou a outro pacote e é mantido. Arquivos ausentes não são erro, o que
torna a remoção idempotente frente a uma remoção parcial anterior.
"""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass, field
from typing import List, Optional

from lfslite.modules import log
from lfslite.modules.config import Config
from lfslite.modules.context import BuildContext
from lfslite.modules.errors import NotInstalledError, RecipeError
from lfslite.modules.hooks import HookPoint
from lfslite.modules.recipe import Recipe, load_recipe
from lfslite.modules.registry import PackageRegistry

logger = log.get_logger("remove")


@dataclass
class RemoveResult:
    name: str
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)     # diretórios não vazios
    failed: List[str] = field(default_factory=list)


def _target(rootfs: str, entry: str) -> Optional[str]:
    """Caminho real de uma entrada; None se sair do rootfs ou for o próprio rootfs"""
    root = os.path.normpath(rootfs)
    path = os.path.normpath(os.path.join(root, entry.lstrip("/")))
    prefix = root if root.endswith(os.sep) else root + os.sep
    if path == root or not path.startswith(prefix):
        return None
    # um diretório intermediário pode ser link para fora do rootfs
    real_root = os.path.realpath(root)
    real_parent = os.path.realpath(os.path.dirname(path))
    if real_parent != real_root and not real_parent.startswith(real_root.rstrip(os.sep) + os.sep):
        return None
    return path


def _remove_entry(path: str, entry: str, result: RemoveResult) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        try:
            os.rmdir(path)
            result.removed.append(entry)
        except OSError as e:
            if e.errno in (errno.ENOTEMPTY, errno.EEXIST):
                logger.debug("Diretório não vazio mantido: %s", entry)
                result.kept.append(entry)
            elif e.errno == errno.ENOENT:
                pass
            else:
                logger.warning("Falha ao remover diretório %s: %s", entry, e)
                result.failed.append(entry)
        return
    try:
        os.remove(path)
        result.removed.append(entry)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Falha ao remover %s: %s", entry, e)
        result.failed.append(entry)


def _installed_recipe(name: str, registry: PackageRegistry) -> Optional[Recipe]:
    """Receita de origem gravada nos metadados, se ainda existir"""
    try:
        recipe_path = registry.read_meta(name).get("recipe")
    except NotInstalledError:
        return None
    if recipe_path and os.path.isfile(recipe_path):
        try:
            return load_recipe(recipe_path)
        except RecipeError as e:
            logger.warning("Receita %s ilegível, post_remove ignorado: %s", recipe_path, e)
    return None


def remove_package(name: str, cfg: Config, registry: PackageRegistry,
                   recipe: Optional[Recipe] = None) -> RemoveResult:
    """Remove o pacote `name` do rootfs e do registro"""
    manifest = registry.read_manifest(name)   # NotInstalledError se ausente
    if recipe is None:
        recipe = _installed_recipe(name, registry)
    result = RemoveResult(name)

    for entry in reversed(manifest):
        path = _target(cfg.rootfs, entry)
        if path is None:
            logger.warning("Entrada fora do rootfs ignorada: %r", entry)
            continue
        _remove_entry(path, entry, result)

    if recipe is not None:
        BuildContext(recipe, cfg).run_hook(HookPoint.POST_REMOVE, fatal=False)

    registry.delete(name)
    logger.info("Removido %s (%d entradas, %d diretórios mantidos)",
                name, len(result.removed), len(result.kept))
    return result

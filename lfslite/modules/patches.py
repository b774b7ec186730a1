# patches.py
"""
Aplicação de patches declarados na receita, em ordem, com `patch -p1`.

Resolução de cada referência (primeira que existir vence):
  1. o caminho literal
  2. URL → cópia no cache de downloads (baixada se ausente)
  3. relativo ao diretório da receita
Uma falha aborta o pipeline; não há rollback de patches já aplicados (a
WorkingTree é descartável e a próxima extração começa limpa).
"""

from __future__ import annotations

import os
from typing import List

import requests

from lfslite.modules import log, utils
from lfslite.modules.context import BuildContext
from lfslite.modules.errors import PatchError

logger = log.get_logger("patches")


def resolve_patch(ref: str, ctx: BuildContext) -> str:
    if os.path.isfile(ref):
        return os.path.abspath(ref)

    if utils.is_url(ref):
        cached = os.path.join(ctx.config.dist_dir, utils.url_basename(ref))
        if not os.path.isfile(cached):
            try:
                utils.download(ref, cached)
            except requests.RequestException as e:
                raise PatchError(f"Falha ao baixar patch {ref}: {e}") from e
        return cached

    recipe_dir = ctx.recipe.recipe_dir
    for candidate in (os.path.join(recipe_dir, ref),
                      os.path.join(recipe_dir, os.path.basename(ref))):
        if os.path.isfile(candidate):
            return candidate

    raise PatchError(f"Patch não encontrado: {ref}")


def apply_patch(patch_file: str, src_dir: str, strip: int = 1) -> None:
    """Aplica patch a partir de um arquivo .patch"""
    logger.info("Aplicando patch %s", os.path.basename(patch_file))
    rc, _ = utils.run(
        ["patch", f"-p{strip}", "-N", "-i", os.path.abspath(patch_file)],
        cwd=src_dir,
        check=False
    )
    if rc != 0:
        raise PatchError(f"Falha ao aplicar patch {patch_file} (rc={rc})")


def apply_patches(ctx: BuildContext) -> List[str]:
    """Aplica todos os patches da receita; retorna os arquivos aplicados"""
    if not ctx.recipe.patches:
        logger.info("Sem patches")
        return []
    if not os.path.isdir(ctx.worktree):
        raise PatchError(f"WorkingTree inexistente: {ctx.worktree} (execute extract antes)")

    applied = []
    for ref in ctx.recipe.patches:
        patch_file = resolve_patch(ref, ctx)
        apply_patch(patch_file, ctx.worktree)
        applied.append(patch_file)
    return applied

# fetch.py
"""
Aquisição de fontes.

- source.url: baixa para o cache de downloads (dist_dir) somente se o
  artefato ainda não existir; confere SHA256 quando declarado. Em caso de
  hash divergente o artefato é mantido para inspeção.
- source.git: clone raso (depth 1) ou atualização fast-forward do checkout
  existente; nunca faz reset forçado.
"""

from __future__ import annotations

import os

import requests

from lfslite.modules import log, utils
from lfslite.modules.context import BuildContext
from lfslite.modules.errors import FetchError, IntegrityError

logger = log.get_logger("fetch")


def verify_artifact(path: str, expected: str | None) -> None:
    """Levanta IntegrityError se o SHA256 declarado não conferir"""
    if not expected:
        return
    got = utils.sha256_file(path)
    if got != expected.lower():
        raise IntegrityError(
            f"SHA256 não confere para {os.path.basename(path)}: "
            f"esperado {expected.lower()}, obtido {got} (arquivo mantido em {path})"
        )
    logger.debug("SHA256 ok: %s", path)


def fetch_archive(ctx: BuildContext) -> str:
    recipe = ctx.recipe
    dest = ctx.artifact
    if os.path.isfile(dest):
        logger.info("Artefato já existe em %s", dest)
    else:
        try:
            utils.download(recipe.url, dest)
        except requests.RequestException as e:
            raise FetchError(f"Falha no download de {recipe.url}: {e}") from e
    verify_artifact(dest, recipe.sha256)
    return dest


def fetch_git(ctx: BuildContext) -> str:
    recipe = ctx.recipe
    dest = ctx.worktree
    if os.path.isdir(os.path.join(dest, ".git")):
        logger.info("Atualizando git %s", recipe.name)
        rc, _ = utils.run(["git", "-C", dest, "pull", "--ff-only"], check=False)
        if rc != 0:
            raise FetchError(f"git pull --ff-only falhou em {dest} (rc={rc})")
    else:
        if os.path.exists(dest) and os.listdir(dest):
            raise FetchError(f"{dest} existe e não é um checkout git")
        utils.ensure_dir(os.path.dirname(dest))
        logger.info("Clonando %s", recipe.git)
        rc, _ = utils.run(["git", "clone", "--depth", "1", recipe.git, dest], check=False)
        if rc != 0:
            raise FetchError(f"git clone falhou para {recipe.git} (rc={rc})")
    return dest


def fetch_sources(ctx: BuildContext) -> str:
    """Retorna o caminho do artefato baixado ou do checkout git"""
    if ctx.recipe.is_vcs:
        return fetch_git(ctx)
    return fetch_archive(ctx)

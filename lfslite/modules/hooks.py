# lfslite/modules/hooks.py
"""
Hooks de receita: executáveis opcionais em <recipe-dir>/hooks/<ponto>,
chamados com três argumentos posicionais (worktree, rootfs, staging).
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Type

from lfslite.modules import log, utils
from lfslite.modules.errors import HookError, LfsliteError

logger = log.get_logger("hooks")


class HookPoint(str, Enum):
    PRE_CONFIGURE = "pre_configure"
    CONFIGURE = "configure"
    PRE_INSTALL = "pre_install"
    INSTALL = "install"
    POST_INSTALL = "post_install"
    POST_REMOVE = "post_remove"


class HookDispatcher:
    def __init__(self, recipe_dir: str):
        self.recipe_dir = recipe_dir
        self.hooks_dir = os.path.join(recipe_dir, "hooks")

    def path(self, point: HookPoint) -> str:
        return os.path.join(self.hooks_dir, HookPoint(point).value)

    def available(self, point: HookPoint) -> bool:
        p = self.path(point)
        return os.path.isfile(p) and os.access(p, os.X_OK)

    def run(self, point: HookPoint, worktree: str, rootfs: str, staging: str,
            fatal: bool = True, error: Type[LfsliteError] = HookError) -> bool:
        """
        Executa o hook se existir. Retorna True se rodou com sucesso, False se
        ausente (ou se falhou com fatal=False). Com fatal=True uma saída != 0
        levanta `error`.
        """
        point = HookPoint(point)
        hook = self.path(point)
        if not self.available(point):
            if os.path.exists(hook):
                logger.warning("Hook %s existe mas não é executável, ignorado", hook)
            return False

        logger.info("Hook %s", point.value)
        cwd = worktree if os.path.isdir(worktree) else self.recipe_dir
        rc, _ = utils.run([hook, worktree, rootfs, staging], cwd=cwd, check=False)
        if rc == 0:
            return True
        msg = f"Hook {point.value} falhou (rc={rc})"
        if fatal:
            raise error(msg)
        logger.warning("%s, continuando", msg)
        return False

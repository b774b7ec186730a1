# fakeroot.py
"""
Módulo 'fakeroot' para lfslite: executar operações que precisariam de root
(ownership de arquivos copiados para o rootfs) sem exigir root de verdade.

- detecta e usa 'fakeroot' / 'proot' quando disponíveis
- run(cmd, ...) executa comando com o prefixo de emulação, ou sem ele
- merge_tree(src, dest) copia uma árvore inteira preservando atributos

O modo vem de Config.fakeroot:
  auto → usa se disponível, senão cópia simples (só ownership difere)
  yes  → exige a ferramenta
  no   → nunca usa
"""

from __future__ import annotations

import os
import shutil
from typing import List, Optional, Tuple

from lfslite.modules import log, utils
from lfslite.modules.errors import InstallError

logger = log.get_logger("fakeroot")


# ----------------------------------------------------------------------
# Detectar ferramentas disponíveis (ordem de preferência)
# ----------------------------------------------------------------------
def _build_prefix() -> List[str]:
    """
    Retorna o prefixo de comando para executar algo em modo 'fakeroot'.
    - prefere fakeroot (mais simples)
    - se não existir, tenta proot -0
    - se não existir nada, retorna []
    """
    if shutil.which("fakeroot"):
        return ["fakeroot"]
    if shutil.which("proot"):
        # proot -0 emula uid 0
        return ["proot", "-0"]
    return []


def prefix_for(mode: str) -> List[str]:
    if mode == "no":
        return []
    prefix = _build_prefix()
    if mode == "yes" and not prefix:
        raise InstallError("FAKEROOT=yes mas nem fakeroot nem proot estão disponíveis")
    return prefix


# ----------------------------------------------------------------------
# API principal
# ----------------------------------------------------------------------
def run(cmd: List[str], mode: str = "auto", cwd: Optional[str] = None) -> Tuple[int, str]:
    """
    Executa um comando preferencialmente dentro do mecanismo fakeroot/proot.
    Retorna (rc, saida).
    """
    prefix = prefix_for(mode)
    if prefix:
        logger.debug("Executando com prefix %s: %s", prefix[0], " ".join(cmd))
    else:
        logger.debug("Executando sem emulação: %s", " ".join(cmd))
    return utils.run(prefix + cmd, cwd=cwd, check=False)


def merge_tree(src: str, dest: str, mode: str = "auto") -> None:
    """
    Promove todo o conteúdo de src para dest (cp -a src/. dest/).
    Falha → InstallError.
    """
    utils.ensure_dir(dest)
    label = "fakeroot merge" if prefix_for(mode) else "merge arquivos"
    logger.info("%s: %s → %s", label, src, dest)
    rc, out = run(["cp", "-a", os.path.join(src, "."), dest + os.sep], mode=mode)
    if rc != 0:
        raise InstallError(f"Falha ao mesclar {src} em {dest} (rc={rc}): {out.strip()}")

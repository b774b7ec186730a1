#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
modules/toolchain.py

Esqueleto de toolchain para o lfslite.

- Cria tools_dir e o rootfs.
- Gera um arquivo de ambiente (.toolchain.env) para ser carregado com
  `source`, exportando LFS_TGT, PATH, CONFIG_SITE, CC e CXX.

Não compila nada: a construção da toolchain em si é feita por receitas
comuns instaladas com o ambiente ativado.
"""

from __future__ import annotations

import os
import shlex
from typing import Dict

from lfslite.modules import log, utils
from lfslite.modules.config import Config

logger = log.get_logger("toolchain")

DEFAULT_ENV_FILE = ".toolchain.env"

# diretórios básicos criados sob o rootfs
ROOTFS_SKELETON = ["usr", "lib", "bin", "include"]


def toolchain_env(cfg: Config) -> Dict[str, str]:
    """Variáveis exportadas; PATH mantém o $PATH do shell que carregar o arquivo"""
    return {
        "LFS_TGT": cfg.lfs_tgt,
        "PATH": f"{os.path.join(cfg.tools_dir, 'bin')}:$PATH",
        "CONFIG_SITE": os.path.join(cfg.rootfs, "usr", "share", "config.site"),
        "CC": "gcc",
        "CXX": "g++",
    }


def render_env(env: Dict[str, str]) -> str:
    lines = ["# gerado por lfslite toolchain init"]
    for key, value in env.items():
        if key == "PATH":
            # $PATH precisa expandir no shell
            quoted = '"' + value.replace('"', '\\"') + '"'
        else:
            quoted = shlex.quote(value)
        lines.append(f"export {key}={quoted}")
    return "\n".join(lines) + "\n"


def init_toolchain(cfg: Config, dest: str = DEFAULT_ENV_FILE) -> str:
    """
    Prepara diretórios e grava o arquivo de ambiente em dest.
    Retorna o caminho do arquivo gerado.
    """
    utils.ensure_dir(cfg.tools_dir)
    utils.ensure_dir(cfg.rootfs)
    for sub in ROOTFS_SKELETON:
        utils.ensure_dir(os.path.join(cfg.rootfs, sub))

    dest = os.path.abspath(dest)
    utils.write_atomic(dest, render_env(toolchain_env(cfg)))
    logger.info("Toolchain inicializado. Ative com: source %s", dest)
    return dest

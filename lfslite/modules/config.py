#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
config.py — Módulo de configuração do lfslite

- Hierarquia (menor → maior precedência):
  defaults > $LFSLITE_CONFIG | ~/.config/lfslite/config.yml | /etc/lfslite/config.yml
  > arquivo .env > variáveis de ambiente
- O resultado é um objeto Config explícito, repassado a cada componente
  (nenhum estado global mutável)
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional

import yaml
from dotenv import dotenv_values

from lfslite.modules.errors import ConfigError

# Caminhos padrão
USER_CONFIG = os.path.expanduser("~/.config/lfslite/config.yml")
SYSTEM_CONFIG = "/etc/lfslite/config.yml"

# Categorias criadas por ensure_dirs
DEFAULT_CATEGORIES = ["base", "extras", "x11", "desktop"]

# chave do Config -> variável de ambiente
ENV_NAMES = {
    "rootfs": "ROOTFS",
    "recipes_dir": "REPO",
    "work_dir": "WORK",
    "dist_dir": "DIST",
    "build_dir": "BUILD",
    "db_dir": "DB",
    "log_dir": "LOGS",
    "jobs": "JOBS",
    "fakeroot": "FAKEROOT",
    "color": "COLOR",
    "default_category": "DEFAULT_CATEGORY",
    "tools_dir": "TOOLS",
    "lfs_tgt": "LFS_TGT",
}

_CHOICES = {
    "fakeroot": ("auto", "yes", "no"),
    "color": ("auto", "always", "never"),
}

_PATH_KEYS = ("rootfs", "recipes_dir", "work_dir", "dist_dir", "build_dir",
              "db_dir", "log_dir", "tools_dir")


@dataclass(frozen=True)
class Config:
    # Diretórios principais
    rootfs: str = "/opt/lfslite/root"          # destino final de instalação
    recipes_dir: str = "./recipes"             # receitas por categoria
    work_dir: str = "./work"                   # árvores de trabalho
    dist_dir: str = "./dist"                   # cache de downloads (fontes/patches)
    build_dir: str = "./build"                 # áreas de staging (DESTDIR)
    db_dir: str = "./var/lfslite/db"           # manifestos e metadados
    log_dir: str = "./var/lfslite/logs"

    # Compilação
    jobs: int = os.cpu_count() or 2

    # auto | yes | no
    fakeroot: str = "auto"
    # auto | always | never
    color: str = "auto"

    default_category: str = "base"

    # Toolchain
    tools_dir: str = "/opt/lfslite/tools"
    lfs_tgt: str = f"{platform.machine() or 'x86_64'}-lfslite-linux-gnu"

    def resolved(self, base: Optional[str] = None) -> "Config":
        """Retorna cópia com todos os diretórios absolutos (relativos a base/cwd)."""
        base = base or os.getcwd()
        changes = {}
        for key in _PATH_KEYS:
            value = os.path.expanduser(getattr(self, key))
            changes[key] = os.path.normpath(os.path.join(base, value))
        return replace(self, **changes)

    def as_dict(self) -> Dict[str, object]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _load_from(path: str) -> dict:
    """Carrega configuração de um arquivo YAML se existir."""
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Config YAML inválido em {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config em {path} deve ser um mapeamento")
    return data


def config_file(environ: Mapping[str, str]) -> Optional[str]:
    """Primeiro arquivo de config existente: env > usuário > sistema"""
    env_path = environ.get("LFSLITE_CONFIG")
    if env_path and os.path.exists(env_path):
        return env_path
    for candidate in (USER_CONFIG, SYSTEM_CONFIG):
        if os.path.exists(candidate):
            return candidate
    return None


def _from_env(values: Mapping[str, Optional[str]]) -> dict:
    out = {}
    for key, env_name in ENV_NAMES.items():
        value = values.get(env_name)
        if value is not None and value != "":
            out[key] = value
    return out


def _coerce(raw: dict) -> dict:
    known = {f.name for f in fields(Config)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Chaves de configuração desconhecidas: {', '.join(unknown)}")
    out = dict(raw)
    if "jobs" in out:
        try:
            out["jobs"] = int(out["jobs"])
        except (TypeError, ValueError):
            raise ConfigError(f"jobs deve ser inteiro: {out['jobs']!r}")
        if out["jobs"] < 1:
            raise ConfigError(f"jobs deve ser >= 1: {out['jobs']}")
    for key, choices in _CHOICES.items():
        if key in out:
            out[key] = str(out[key]).lower()
            if out[key] not in choices:
                raise ConfigError(f"{key} inválido: {out[key]!r} (use {'|'.join(choices)})")
    for key in _PATH_KEYS + ("default_category", "lfs_tgt"):
        if key in out:
            out[key] = str(out[key])
    return out


def load_config(environ: Optional[Mapping[str, str]] = None,
                env_file: Optional[str] = ".env",
                base: Optional[str] = None) -> Config:
    """
    Monta o Config final. environ padrão é os.environ; env_file=None desliga
    a leitura do .env. Diretórios relativos são resolvidos contra base/cwd.
    """
    environ = os.environ if environ is None else environ
    merged: dict = {}

    path = config_file(environ)
    if path:
        merged.update(_load_from(path))

    if env_file and os.path.isfile(env_file):
        merged.update(_from_env(dotenv_values(env_file)))

    merged.update(_from_env(environ))
    return Config(**_coerce(merged)).resolved(base)


def ensure_dirs(cfg: Config) -> None:
    """Garante que diretórios essenciais existem."""
    for key in _PATH_KEYS:
        if key == "tools_dir":
            continue
        os.makedirs(getattr(cfg, key), exist_ok=True)
    for cat in DEFAULT_CATEGORIES:
        os.makedirs(os.path.join(cfg.recipes_dir, cat), exist_ok=True)


# Execução direta para debug
if __name__ == "__main__":
    import json
    print("Config atual:")
    print(json.dumps(load_config().as_dict(), indent=2, ensure_ascii=False))

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
recipe.py — receitas do lfslite

Uma receita é um arquivo YAML em <recipes>/<categoria>/<nome>/<nome>.recipe
(ou <recipes>/<categoria>/<nome>.recipe). O carregamento é apenas parse +
validação: nenhum código da receita é executado.

Exemplo:

    name: hello
    version: "2.12"
    source:
      url: https://ftp.gnu.org/gnu/hello/hello-2.12.tar.gz
      sha256: cf04af86dc085268c5f4470fbae49b18afbc221b78096aab842d934a76bad0ab
    patches: []
    build_system: autotools
    configure_options: []
    make_options: []
    install_options: []
    install_strategy: staged
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

import yaml

from lfslite.modules import log
from lfslite.modules.errors import RecipeError
from lfslite.modules.utils import url_basename

logger = log.get_logger("recipe")

RECIPE_SUFFIX = ".recipe"

REQUIRED_FIELDS = ["name", "version", "source"]
OPTIONAL_FIELDS = [
    "description", "category", "patches", "build_system",
    "configure_options", "make_options", "install_options",
    "install_strategy", "binaries",
]
SOURCE_FIELDS = ["url", "sha256", "archive", "git"]

_SHA256_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class BuildSystem(str, Enum):
    AUTOTOOLS = "autotools"
    CMAKE = "cmake"
    MESON = "meson"
    MAKE = "make"


class InstallStrategy(str, Enum):
    STAGED = "staged"   # DESTDIR em staging + merge no rootfs
    DIRECT = "direct"   # direto no rootfs, manifesto por snapshot antes/depois


@dataclass
class Recipe:
    name: str
    version: str
    path: str
    url: Optional[str] = None
    sha256: Optional[str] = None
    archive: Optional[str] = None
    git: Optional[str] = None
    patches: List[str] = field(default_factory=list)
    build_system: BuildSystem = BuildSystem.AUTOTOOLS
    configure_options: List[str] = field(default_factory=list)
    make_options: List[str] = field(default_factory=list)
    install_options: List[str] = field(default_factory=list)
    install_strategy: InstallStrategy = InstallStrategy.STAGED
    binaries: List[str] = field(default_factory=list)
    description: str = ""
    category: Optional[str] = None

    @property
    def package_id(self) -> str:
        return f"{self.name}-{self.version}"

    @property
    def recipe_dir(self) -> str:
        return os.path.dirname(os.path.abspath(self.path))

    @property
    def is_vcs(self) -> bool:
        return self.git is not None

    @property
    def archive_name(self) -> Optional[str]:
        if self.is_vcs:
            return None
        return self.archive or url_basename(self.url)

    @property
    def staged(self) -> bool:
        return self.install_strategy is InstallStrategy.STAGED


def _string_list(data: dict, key: str, fname: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list) or not all(isinstance(v, (str, int, float)) for v in value):
        raise RecipeError(f"Campo '{key}' deve ser uma lista de strings em {fname}")
    return [str(v) for v in value]


def _enum(enum_cls, data: dict, key: str, default, fname: str):
    value = data.get(key)
    if value is None:
        return default
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = "|".join(e.value for e in enum_cls)
        raise RecipeError(f"Campo '{key}' inválido em {fname}: {value!r} (use {choices})")


def _identity(data: dict, key: str, fname: str) -> str:
    value = data.get(key)
    if value is None:
        raise RecipeError(f"Campo obrigatório '{key}' ausente ou vazio em {fname}")
    if not isinstance(value, str):
        # version: 2.10 vira 2.1 no YAML; exigir aspas
        raise RecipeError(f"Campo '{key}' deve ser string (use aspas) em {fname}: {value!r}")
    if value.strip() == "" or "/" in value:
        raise RecipeError(f"Campo '{key}' inválido em {fname}: {value!r}")
    return value.strip()


def parse_recipe(data: Any, path: str) -> Recipe:
    """Valida o dicionário cru da receita e produz um Recipe"""
    fname = os.path.basename(path)
    if not isinstance(data, dict):
        raise RecipeError(f"Receita {fname} deve ser um mapeamento YAML")

    name = _identity(data, "name", fname)
    version = _identity(data, "version", fname)

    source = data.get("source")
    if not isinstance(source, dict):
        raise RecipeError(f"Campo obrigatório 'source' ausente ou inválido em {fname}")
    unknown_src = sorted(set(source) - set(SOURCE_FIELDS))
    if unknown_src:
        raise RecipeError(f"Campos desconhecidos em source de {fname}: {', '.join(unknown_src)}")
    url = source.get("url") or None
    git = source.get("git") or None
    if url and git:
        raise RecipeError(f"source ambígua em {fname}: defina 'url' ou 'git', não ambos")
    if not url and not git:
        raise RecipeError(f"source em {fname} precisa de 'url' ou 'git'")

    sha256 = source.get("sha256") or None
    archive = source.get("archive") or None
    if git and (sha256 or archive):
        raise RecipeError(f"'sha256'/'archive' só valem para source.url em {fname}")
    if sha256 is not None:
        sha256 = str(sha256).strip()
        if not _SHA256_RE.match(sha256):
            raise RecipeError(f"Campo 'sha256' inválido em {fname}: {sha256!r}")
        sha256 = sha256.lower()
    if archive is not None and (not isinstance(archive, str) or os.path.basename(archive) != archive):
        raise RecipeError(f"Campo 'archive' deve ser um nome de arquivo em {fname}: {archive!r}")
    if url and not (archive or url_basename(str(url))):
        raise RecipeError(f"Não foi possível derivar nome do artefato de {url!r} em {fname}")

    binaries = _string_list(data, "binaries", fname)
    for b in binaries:
        if not b.startswith("/") or b.rstrip("/") == "":
            raise RecipeError(f"Entrada de 'binaries' deve ser caminho absoluto em {fname}: {b!r}")

    unknown = sorted(set(data) - set(REQUIRED_FIELDS) - set(OPTIONAL_FIELDS))
    if unknown:
        logger.warning("Campos desconhecidos ignorados em %s: %s", fname, ", ".join(unknown))

    return Recipe(
        name=name,
        version=version,
        path=os.path.abspath(path),
        url=str(url) if url else None,
        sha256=sha256,
        archive=archive,
        git=str(git) if git else None,
        patches=_string_list(data, "patches", fname),
        build_system=_enum(BuildSystem, data, "build_system", BuildSystem.AUTOTOOLS, fname),
        configure_options=_string_list(data, "configure_options", fname),
        make_options=_string_list(data, "make_options", fname),
        install_options=_string_list(data, "install_options", fname),
        install_strategy=_enum(InstallStrategy, data, "install_strategy", InstallStrategy.STAGED, fname),
        binaries=binaries,
        description=str(data.get("description") or ""),
        category=data.get("category") or None,
    )


def load_recipe(path: str) -> Recipe:
    """Carrega e valida uma receita a partir do caminho do arquivo"""
    if not os.path.isfile(path):
        raise RecipeError(f"Receita não encontrada: {path}")
    logger.debug("Carregando receita: %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise RecipeError(f"YAML inválido em {path}: {e}") from e
    return parse_recipe(data, path)


def list_recipes(recipes_dir: str) -> List[Tuple[str, str, str]]:
    """Lista (categoria, nome, caminho) de todas as receitas do repositório"""
    out = []
    if not os.path.isdir(recipes_dir):
        return out
    for cat in sorted(os.listdir(recipes_dir)):
        cat_dir = os.path.join(recipes_dir, cat)
        if not os.path.isdir(cat_dir):
            continue
        for entry in sorted(os.listdir(cat_dir)):
            full = os.path.join(cat_dir, entry)
            if entry.endswith(RECIPE_SUFFIX) and os.path.isfile(full):
                out.append((cat, entry[:-len(RECIPE_SUFFIX)], full))
            elif os.path.isdir(full):
                nested = os.path.join(full, entry + RECIPE_SUFFIX)
                if os.path.isfile(nested):
                    out.append((cat, entry, nested))
    return out


def resolve_recipe_path(ref: str, recipes_dir: str) -> str:
    """
    Aceita caminho de arquivo de receita ou nome de pacote; nomes são
    procurados em todas as categorias de recipes_dir.
    """
    if os.path.isfile(ref):
        return os.path.abspath(ref)
    if os.sep not in ref and not ref.endswith(RECIPE_SUFFIX):
        matches = [p for _, name, p in list_recipes(recipes_dir) if name == ref]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise RecipeError(f"Nome {ref} ambíguo, use o caminho: {', '.join(matches)}")
    raise RecipeError(f"Receita não encontrada: {ref}")


TEMPLATE = """\
# Receita lfslite
name: {name}
version: "1.0"
description: ""
source:
  url: https://example.com/{name}-1.0.tar.gz
  # sha256: <hash sha256 do artefato>
  # archive: {name}-1.0.tar.gz
  # git: https://git.example/{name}.git   (use no lugar de url)
patches: []
build_system: autotools      # autotools | cmake | meson | make
configure_options: []
make_options: []
install_options: []
install_strategy: staged     # staged | direct
# binaries: [/usr/bin/{name}]   # copia binários do diretório de trabalho
"""


def create_recipe(name: str, category: str, recipes_dir: str) -> str:
    """
    Cria a estrutura básica de receita:
      - diretório do pacote com hooks/ e patches/
      - arquivo .recipe com template
    Retorna o caminho do arquivo criado.
    """
    if not name or "/" in name or name.startswith("."):
        raise RecipeError(f"Nome de pacote inválido: {name!r}")
    pkg_dir = os.path.join(recipes_dir, category, name)
    recipe_path = os.path.join(pkg_dir, name + RECIPE_SUFFIX)
    if os.path.exists(recipe_path):
        raise RecipeError(f"Receita {name} já existe em {category}")

    os.makedirs(os.path.join(pkg_dir, "hooks"), exist_ok=True)
    os.makedirs(os.path.join(pkg_dir, "patches"), exist_ok=True)
    with open(recipe_path, "w", encoding="utf-8") as f:
        f.write(TEMPLATE.format(name=name))

    logger.info("Receita criada em %s", recipe_path)
    return recipe_path


__all__ = [
    "BuildSystem", "InstallStrategy", "Recipe", "parse_recipe", "load_recipe",
    "list_recipes", "resolve_recipe_path", "create_recipe", "RecipeError",
]

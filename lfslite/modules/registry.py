# registry.py
"""
Registro de pacotes instalados.

Dois arquivos por nome de pacote em db_dir:
  <nome>.manifest: um caminho relativo ao rootfs por linha (ex.: /usr/bin/hello),
                   bytes do nome preservados (surrogateescape); um caminho
                   com quebra de linha não pode ser gravado
  <nome>.meta:     JSON com name, version, installed_at, recipe
Ambos são gravados de forma atômica, sobrescritos na reinstalação e
apagados juntos na remoção.
"""

from __future__ import annotations

import json
import os
from typing import Dict, List

from lfslite.modules import log, utils
from lfslite.modules.errors import InstallError, NotInstalledError

logger = log.get_logger("registry")


def check_manifest(manifest: List[str]) -> None:
    """InstallError se alguma entrada não couber no formato de uma por linha"""
    bad = [p for p in manifest if "\n" in p]
    if bad:
        raise InstallError(f"Caminho com quebra de linha não pode entrar no manifesto: {bad[0]!r}")


class PackageRegistry:
    def __init__(self, db_dir: str):
        self.db_dir = db_dir

    def manifest_path(self, name: str) -> str:
        return os.path.join(self.db_dir, f"{name}.manifest")

    def meta_path(self, name: str) -> str:
        return os.path.join(self.db_dir, f"{name}.meta")

    def is_installed(self, name: str) -> bool:
        return os.path.isfile(self.manifest_path(name))

    def write(self, name: str, manifest: List[str], meta: Dict) -> None:
        check_manifest(manifest)
        # meta primeiro: o manifesto é o que marca o pacote como instalado
        utils.write_atomic(self.meta_path(name), json.dumps(meta, indent=2, ensure_ascii=False) + "\n")
        try:
            utils.write_atomic(self.manifest_path(name), "".join(f"{p}\n" for p in manifest),
                               errors="surrogateescape")
        except (OSError, ValueError):
            os.remove(self.meta_path(name))
            raise
        logger.debug("Registro gravado: %s (%d entradas)", name, len(manifest))

    def read_manifest(self, name: str) -> List[str]:
        path = self.manifest_path(name)
        if not os.path.isfile(path):
            raise NotInstalledError(f"Pacote não instalado: {name}")
        # newline="": só '\n' separa entradas, '\r' faz parte do nome
        with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
            return [line for line in f.read().split("\n") if line]

    def read_meta(self, name: str) -> Dict:
        path = self.meta_path(name)
        if not os.path.isfile(path):
            raise NotInstalledError(f"Metadados ausentes para {name}")
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def delete(self, name: str) -> None:
        for path in (self.manifest_path(name), self.meta_path(name)):
            if os.path.exists(path):
                os.remove(path)
        logger.debug("Registro removido: %s", name)

    def list_installed(self) -> List[Dict]:
        if not os.path.isdir(self.db_dir):
            return []
        pkgs = []
        for fn in sorted(os.listdir(self.db_dir)):
            if not fn.endswith(".manifest"):
                continue
            name = fn[:-len(".manifest")]
            try:
                pkgs.append(self.read_meta(name))
            except NotInstalledError:
                pkgs.append({"name": name, "version": "?"})
        return pkgs

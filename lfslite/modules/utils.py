import os
import re
import shutil
import hashlib
import subprocess
from typing import Dict, List, Optional, Tuple

import requests

from lfslite.modules import log

logger = log.get_logger("utils")

_URL_RE = re.compile(r"^(https?|ftp)://", re.IGNORECASE)


# -------------------------
# Sistema de arquivos
# -------------------------
def ensure_dir(path: str):
    """Cria diretório se não existir"""
    os.makedirs(path, exist_ok=True)


def clean_dir(path: str):
    """Remove diretório se existir e recria vazio"""
    if os.path.lexists(path):
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
    os.makedirs(path)


def empty_dir(path: str):
    """Remove o conteúdo de um diretório, mantendo o diretório"""
    ensure_dir(path)
    for entry in os.scandir(path):
        if entry.is_dir(follow_symlinks=False):
            shutil.rmtree(entry.path)
        else:
            os.remove(entry.path)


def copy_file(src: str, dst: str):
    """Copia arquivo preservando metadados (e links simbólicos como links)"""
    ensure_dir(os.path.dirname(dst))
    if os.path.lexists(dst) and not os.path.isdir(dst):
        os.remove(dst)
    shutil.copy2(src, dst, follow_symlinks=False)


def write_atomic(path: str, data: str, errors: str = "strict"):
    """Grava texto em arquivo temporário e renomeia sobre o destino"""
    ensure_dir(os.path.dirname(path))
    tmp = f"{path}.tmp"
    try:
        with open(tmp, "w", encoding="utf-8", errors=errors) as f:
            f.write(data)
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


# -------------------------
# Execução de comandos
# -------------------------
def run(cmd: List[str], cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None,
        check: bool = True) -> Tuple[int, str]:
    """Wrapper para rodar comandos com log"""
    try:
        rc, out = log.run_cmd(cmd, cwd=cwd, env=env)
    except OSError as e:
        logger.error("Não foi possível executar %s: %s", cmd[0], e)
        rc, out = 127, str(e)
    if check and rc != 0:
        raise subprocess.CalledProcessError(rc, cmd, out)
    return rc, out


def with_env(**extra: str) -> Dict[str, str]:
    """Cópia de os.environ com variáveis extras"""
    env = dict(os.environ)
    env.update(extra)
    return env


# -------------------------
# Download e cache
# -------------------------
def is_url(ref: str) -> bool:
    return bool(_URL_RE.match(ref or ""))


def url_basename(url: str) -> str:
    return os.path.basename(url.split("?")[0].rstrip("/"))


def download(url: str, dest: str, timeout: int = 60) -> str:
    """
    Baixa url em dest (stream em dest.part, renomeado ao final). Um download
    interrompido nunca deixa um arquivo com o nome final.
    Propaga requests.RequestException.
    """
    ensure_dir(os.path.dirname(dest))
    part = f"{dest}.part"
    logger.info("Baixando %s → %s", url, dest)
    try:
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            with open(part, "wb") as f:
                for chunk in r.iter_content(chunk_size=65536):
                    if chunk:
                        f.write(chunk)
        os.replace(part, dest)
    finally:
        if os.path.exists(part):
            os.remove(part)
    return dest


def sha256_file(path: str) -> str:
    """SHA256 hexadecimal de um arquivo"""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()

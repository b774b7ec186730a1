# extract.py
"""
Extração de fontes para a WorkingTree.

A WorkingTree é esvaziada a cada extração. Tarballs têm o primeiro
componente do caminho removido (como tar --strip-components=1) para que a
raiz da WorkingTree seja a raiz da fonte. Origem git pula esta fase.
"""

from __future__ import annotations

import bz2
import gzip
import lzma
import os
import shutil
import tarfile
import tempfile
import zipfile
from typing import Callable, Iterator, Optional, Tuple

import zstandard as zstd

from lfslite.modules import log, utils
from lfslite.modules.fetch import verify_artifact
from lfslite.modules.context import BuildContext
from lfslite.modules.errors import FetchError, UnsupportedFormatError

logger = log.get_logger("extract")


def _strip_members(tar: tarfile.TarFile, components: int = 1) -> Iterator[tarfile.TarInfo]:
    for member in tar:
        parts = [p for p in member.name.split("/") if p not in ("", ".")]
        if len(parts) <= components:
            continue
        member.name = "/".join(parts[components:])
        if member.islnk():
            link_parts = [p for p in member.linkname.split("/") if p not in ("", ".")]
            member.linkname = "/".join(link_parts[components:])
        yield member


def _extract_tar(tar: tarfile.TarFile, dest: str) -> None:
    kwargs = {}
    if hasattr(tarfile, "tar_filter"):
        kwargs["filter"] = "tar"
    tar.extractall(dest, members=list(_strip_members(tar)), **kwargs)


def extract_tar(archive: str, dest: str, mode: str = "r:*") -> None:
    with tarfile.open(archive, mode) as tar:
        _extract_tar(tar, dest)


def extract_tar_zst(archive: str, dest: str) -> None:
    # descomprime para um tar temporário e extrai normalmente
    fd, tmp = tempfile.mkstemp(suffix=".tar", dir=os.path.dirname(dest))
    try:
        dctx = zstd.ZstdDecompressor()
        with open(archive, "rb") as inf, os.fdopen(fd, "wb") as outf:
            dctx.copy_stream(inf, outf)
        extract_tar(tmp, dest, mode="r:")
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def _flatten_single_top(dest: str) -> None:
    """Pasta única no topo vira a raiz da WorkingTree"""
    entries = os.listdir(dest)
    if len(entries) != 1 or not os.path.isdir(os.path.join(dest, entries[0])):
        return
    # renomeia antes: um filho pode ter o mesmo nome da pasta do topo
    holder = tempfile.mkdtemp(prefix=".flatten-", dir=dest)
    top = os.path.join(holder, entries[0])
    os.rename(os.path.join(dest, entries[0]), top)
    for name in os.listdir(top):
        os.rename(os.path.join(top, name), os.path.join(dest, name))
    os.rmdir(top)
    os.rmdir(holder)


def extract_zip(archive: str, dest: str) -> None:
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            target = zf.extract(info, dest)
            mode = (info.external_attr >> 16) & 0o777
            if mode and not info.is_dir():
                os.chmod(target, mode)
    _flatten_single_top(dest)


def _decompress_single(opener: Callable) -> Callable[[str, str], None]:
    def run(archive: str, dest: str) -> None:
        out = os.path.join(dest, _strip_ext(os.path.basename(archive)))
        with opener(archive, "rb") as inf, open(out, "wb") as outf:
            shutil.copyfileobj(inf, outf)
    return run


def _strip_ext(name: str) -> str:
    return name.rsplit(".", 1)[0]


# ordem importa: sufixos compostos antes dos simples
EXTRACTORS: Tuple[Tuple[Tuple[str, ...], Callable[[str, str], None]], ...] = (
    ((".tar.gz", ".tgz"), lambda a, d: extract_tar(a, d, "r:gz")),
    ((".tar.bz2", ".tbz", ".tbz2"), lambda a, d: extract_tar(a, d, "r:bz2")),
    ((".tar.xz", ".txz"), lambda a, d: extract_tar(a, d, "r:xz")),
    ((".tar.zst", ".tzst"), extract_tar_zst),
    ((".tar",), lambda a, d: extract_tar(a, d, "r:")),
    ((".zip",), extract_zip),
    ((".gz",), _decompress_single(gzip.open)),
    ((".xz",), _decompress_single(lzma.open)),
    ((".bz2",), _decompress_single(bz2.open)),
)


def extractor_for(archive: str) -> Optional[Callable[[str, str], None]]:
    lower = archive.lower()
    for suffixes, func in EXTRACTORS:
        if lower.endswith(suffixes):
            return func
    return None


def extract_archive(archive: str, dest: str) -> str:
    """Esvazia dest e extrai archive nele"""
    func = extractor_for(archive)
    if func is None:
        raise UnsupportedFormatError(f"Formato não suportado: {os.path.basename(archive)}")
    if not os.path.isfile(archive):
        raise FetchError(f"Artefato não encontrado: {archive} (execute fetch antes)")
    utils.clean_dir(dest)
    logger.info("Extraindo %s → %s", os.path.basename(archive), dest)
    try:
        func(archive, dest)
    except (tarfile.TarError, zipfile.BadZipFile, lzma.LZMAError, zstd.ZstdError, EOFError) as e:
        raise FetchError(f"Artefato corrompido ou ilegível: {archive}: {e}") from e
    return dest


def extract_sources(ctx: BuildContext) -> str:
    """Prepara a WorkingTree; retorna o caminho dela"""
    if ctx.recipe.is_vcs:
        logger.info("Fonte via git, pulando extração")
        return ctx.worktree
    # artefato mantido após hash divergente nunca é extraído
    if os.path.isfile(ctx.artifact):
        verify_artifact(ctx.artifact, ctx.recipe.sha256)
    utils.ensure_dir(ctx.config.work_dir)
    return extract_archive(ctx.artifact, ctx.worktree)

#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cli.py — CLI do lfslite

Uso:
  lfslite init                      # cria estrutura de diretórios
  lfslite new <nome> [categoria]    # cria esqueleto de receita
  lfslite fetch <receita>           # baixar fontes
  lfslite extract <receita>         # extrair fontes
  lfslite patch <receita>           # aplicar patches
  lfslite configure <receita>       # configurar
  lfslite build <receita>           # compilar (sem instalar)
  lfslite install <receita>         # construir e instalar
  lfslite remove <receita|nome>     # desinstalar usando o manifesto
  lfslite info <receita>            # informações do pacote
  lfslite list                      # pacotes instalados
  lfslite toolchain init            # inicializar toolchain básico
  lfslite config list|get <chave>   # configuração efetiva
  lfslite clean                     # limpar WORK e BUILD

<receita> é o caminho de um arquivo .recipe ou o nome do pacote (procurado
em todas as categorias do repositório de receitas).

Códigos de saída: 0 sucesso, 1 uso incorreto, 2 erro fatal de fase.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Callable

from lfslite import __version__
from lfslite.modules import build as build_mod
from lfslite.modules import config as config_mod
from lfslite.modules import log as log_mod
from lfslite.modules import toolchain as toolchain_mod
from lfslite.modules import utils as utils_mod
from lfslite.modules.context import BuildContext
from lfslite.modules.errors import ConfigError, LfsliteError, RecipeError
from lfslite.modules.recipe import create_recipe, load_recipe, resolve_recipe_path
from lfslite.modules.registry import PackageRegistry
from lfslite.modules.remove import remove_package

logger = log_mod.get_logger("cli")

# ANSI colors simples
C = {
    "reset": "\033[0m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "bold": "\033[1m",
}

_use_color = True


def color(text: str, col: str) -> str:
    if not _use_color:
        return text
    return f"{C.get(col, '')}{text}{C['reset']}"


def _color_enabled(mode: str) -> bool:
    if mode == "always":
        return True
    if mode == "never":
        return False
    return sys.stdout.isatty()


def _print_json_or_plain(data: Any, as_json: bool) -> None:
    if as_json:
        print(json.dumps(data, ensure_ascii=False, indent=2))
    else:
        if isinstance(data, dict):
            for k, v in data.items():
                print(f"{color(str(k), 'cyan')}: {v}")
        elif isinstance(data, list):
            for item in data:
                print(item)
        else:
            print(data)


def _context(args) -> BuildContext:
    cfg = args.cfg
    config_mod.ensure_dirs(cfg)
    recipe = load_recipe(resolve_recipe_path(args.recipe, cfg.recipes_dir))
    return BuildContext(recipe, cfg)


def _with_action_log(args, ctx: BuildContext, func: Callable[[], Any]) -> Any:
    """Roda func com um log dedicado em log_dir/<timestamp>-<pacote>-<comando>.log"""
    handler = log_mod.action_logfile(args.cfg.log_dir, f"{ctx.recipe.name}-{args.command}")
    try:
        return func()
    finally:
        log_mod.detach_handler(handler)


# ---------------------------
# Command handlers
# ---------------------------

def cmd_init(args):
    """lfslite init"""
    config_mod.ensure_dirs(args.cfg)
    print(color("[OK] Estrutura pronta", "green"))
    return 0


def cmd_new(args):
    """lfslite new <nome> [categoria]"""
    cfg = args.cfg
    config_mod.ensure_dirs(cfg)
    path = create_recipe(args.name, args.category or cfg.default_category, cfg.recipes_dir)
    print(color(f"[OK] Receita criada em {path}", "green"))
    return 0


def cmd_fetch(args):
    ctx = _context(args)
    path = _with_action_log(args, ctx, lambda: build_mod.fetch_stage(ctx))
    print(color(f"[OK] Fonte em {path}", "green"))
    return 0


def cmd_extract(args):
    ctx = _context(args)
    path = _with_action_log(args, ctx, lambda: build_mod.extract_stage(ctx))
    print(color(f"[OK] Extraído em {path}", "green"))
    return 0


def cmd_patch(args):
    ctx = _context(args)
    applied = _with_action_log(args, ctx, lambda: build_mod.patch_stage(ctx))
    print(color(f"[OK] {len(applied)} patch(es) aplicado(s)", "green"))
    return 0


def cmd_configure(args):
    ctx = _context(args)
    _with_action_log(args, ctx, lambda: build_mod.configure_sources(ctx))
    print(color("[OK] Configurado", "green"))
    return 0


def cmd_build(args):
    """lfslite build <receita>: fetch → extract → patch → configure → compile"""
    ctx = _context(args)
    _with_action_log(args, ctx, lambda: build_mod.build_only(ctx))
    print(color("[OK] Build concluída", "green"))
    return 0


def cmd_install(args):
    """lfslite install <receita>: build + install + registro"""
    ctx = _context(args)
    registry = PackageRegistry(args.cfg.db_dir)
    res = _with_action_log(args, ctx, lambda: build_mod.build_and_install(ctx, registry))
    print(color("[OK] Pacote instalado", "green"))
    _print_json_or_plain({"pkg": res.name, "version": res.version,
                          "strategy": res.strategy, "files": res.count}, args.json)
    return 0


def cmd_remove(args):
    """
    lfslite remove <receita|nome>
    Aceita o nome de um pacote instalado mesmo sem a receita no repositório.
    """
    cfg = args.cfg
    config_mod.ensure_dirs(cfg)
    registry = PackageRegistry(cfg.db_dir)
    try:
        recipe = load_recipe(resolve_recipe_path(args.recipe, cfg.recipes_dir))
        name = recipe.name
    except RecipeError:
        if not registry.is_installed(args.recipe):
            raise
        logger.info("Receita de %s não encontrada, removendo pelo registro", args.recipe)
        recipe, name = None, args.recipe
    res = remove_package(name, cfg, registry, recipe=recipe)
    print(color(f"[OK] Pacote removido ({len(res.removed)} entradas)", "green"))
    if res.failed:
        print(color(f"[WARN] {len(res.failed)} entrada(s) não removida(s)", "yellow"))
    return 0


def cmd_info(args):
    """lfslite info <receita>"""
    ctx = _context(args)
    recipe = ctx.recipe
    registry = PackageRegistry(args.cfg.db_dir)
    installed = registry.is_installed(recipe.name)
    if args.json:
        data = {
            "name": recipe.name,
            "version": recipe.version,
            "installed": installed,
            "meta": registry.read_meta(recipe.name) if installed else None,
        }
        _print_json_or_plain(data, True)
        return 0
    print(f"{color('Pacote:', 'bold')} {recipe.name}")
    print(f"{color('Versão:', 'bold')} {recipe.version}")
    print(f"{color('Instalado?:', 'bold')} {'sim' if installed else 'não'}")
    if installed:
        print(color("Meta:", "bold"))
        _print_json_or_plain(registry.read_meta(recipe.name), False)
    return 0


def cmd_list(args):
    """lfslite list"""
    pkgs = PackageRegistry(args.cfg.db_dir).list_installed()
    if args.json:
        _print_json_or_plain(pkgs, True)
        return 0
    for p in pkgs:
        name = p.get("name")
        version = p.get("version", "?")
        print(f"{color(name, 'cyan')} {color(version, 'magenta')}")
    return 0


def cmd_toolchain(args):
    """lfslite toolchain init"""
    path = toolchain_mod.init_toolchain(args.cfg)
    print(color(f"[OK] Toolchain inicializado. Ative com: source {path}", "green"))
    return 0


def cmd_config(args):
    """
    lfslite config list
    lfslite config get <chave>
    """
    values = args.cfg.as_dict()
    if args.action == "get":
        if not args.key:
            print("Uso: lfslite config get <chave>", file=sys.stderr)
            return 1
        if args.key not in values:
            raise ConfigError(f"Chave de configuração desconhecida: {args.key}")
        _print_json_or_plain(values[args.key], args.json)
        return 0
    _print_json_or_plain(values, args.json)
    return 0


def cmd_clean(args):
    """lfslite clean: esvazia WORK e BUILD"""
    cfg = args.cfg
    for d in (cfg.work_dir, cfg.build_dir):
        utils_mod.empty_dir(d)
    print(color(f"[OK] Limpos: {cfg.work_dir} e {cfg.build_dir}", "green"))
    return 0


# ---------------------------
# Parser
# ---------------------------

class _Parser(argparse.ArgumentParser):
    """Erro de uso sai com código 1"""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: erro: {message}\n")


def build_parser():
    p = _Parser(prog="lfslite", description="lfslite - constrói, instala e remove pacotes em um rootfs")
    p.add_argument("--verbose", "-v", action="store_true", help="Modo verboso")
    p.add_argument("--json", action="store_true", help="Imprime JSON quando aplicável")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command")

    si = sub.add_parser("init", help="Criar estrutura de diretórios")
    si.set_defaults(func=cmd_init)

    sn = sub.add_parser("new", help="Criar esqueleto de receita")
    sn.add_argument("name", help="Nome do pacote")
    sn.add_argument("category", nargs="?", default=None, help="Categoria (padrão: DEFAULT_CATEGORY)")
    sn.set_defaults(func=cmd_new)

    stages = [
        ("fetch", "Baixar fontes", cmd_fetch),
        ("extract", "Extrair fontes", cmd_extract),
        ("patch", "Aplicar patches", cmd_patch),
        ("configure", "Configurar", cmd_configure),
        ("build", "Compilar (sem instalar)", cmd_build),
        ("install", "Construir e instalar", cmd_install),
        ("remove", "Desinstalar usando o manifesto", cmd_remove),
        ("info", "Informações do pacote", cmd_info),
    ]
    for name, help_text, func in stages:
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("recipe", help="Arquivo .recipe ou nome do pacote")
        sp.set_defaults(func=func)

    sl = sub.add_parser("list", aliases=["ls"], help="Listar pacotes instalados")
    sl.set_defaults(func=cmd_list)

    stc = sub.add_parser("toolchain", help="Toolchain básico")
    stc.add_argument("action", choices=["init"], help="Ação sobre a toolchain")
    stc.set_defaults(func=cmd_toolchain)

    scf = sub.add_parser("config", help="Mostrar a configuração efetiva")
    scf.add_argument("action", choices=["list", "get"], help="Ação sobre a configuração")
    scf.add_argument("key", nargs="?", help="Chave da configuração")
    scf.set_defaults(func=cmd_config)

    sc = sub.add_parser("clean", help="Limpar WORK e BUILD")
    sc.set_defaults(func=cmd_clean)

    return p


def main(argv=None):
    global _use_color
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    try:
        args.cfg = config_mod.load_config()
        _use_color = _color_enabled(args.cfg.color)
        log_mod.setup_logging(args.cfg.log_dir, verbose=args.verbose, use_color=_use_color)
        rc = args.func(args)
    except (LfsliteError, OSError) as e:
        log_mod.exception("Erro ao executar comando")
        print(color(f"[ERRO] {e}", "red"), file=sys.stderr)
        rc = 2
    except KeyboardInterrupt:
        print(color("[ERRO] Interrompido", "red"), file=sys.stderr)
        rc = 130
    sys.exit(rc if isinstance(rc, int) else 0)


if __name__ == "__main__":
    main()

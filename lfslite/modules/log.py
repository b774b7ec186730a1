import logging
import os
import subprocess
import traceback
from logging.handlers import RotatingFileHandler
from datetime import datetime
from typing import Dict, List, Optional, Tuple

# -------------------------
# Configuração inicial
# -------------------------
_root_logger = logging.getLogger("lfslite")
_root_logger.setLevel(logging.DEBUG)  # captura tudo


class ColorFormatter(logging.Formatter):
    """Formata mensagens com cores para o console"""
    COLORS = {
        logging.DEBUG: "\033[36m",   # ciano
        logging.INFO: "\033[34m",    # azul
        logging.WARNING: "\033[33m", # amarelo
        logging.ERROR: "\033[31m",   # vermelho
        logging.CRITICAL: "\033[41m" # fundo vermelho
    }
    SYMBOLS = {
        logging.DEBUG: "·",
        logging.INFO: "ℹ",
        logging.WARNING: "⚠",
        logging.ERROR: "✖",
        logging.CRITICAL: "✖",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: str = "%(message)s", use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def format(self, record):
        msg = super().format(record)
        symbol = self.SYMBOLS.get(record.levelno, " ")
        if not self.use_color:
            return f"{symbol}  {msg}"
        color = self.COLORS.get(record.levelno, self.RESET)
        return f"{color}{symbol}{self.RESET}  {msg}"


def setup_logging(log_dir: Optional[str] = None, verbose: bool = False,
                  use_color: bool = True) -> None:
    """
    Configura handlers globais: console colorido + arquivo rotativo em
    log_dir/lfslite.log. Pode ser chamado de novo (handlers são trocados).
    """
    for handler in list(_root_logger.handlers):
        _root_logger.removeHandler(handler)
        handler.close()

    # Console
    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(ColorFormatter("%(message)s", use_color=use_color))
    _root_logger.addHandler(ch)

    # Arquivo
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        logfile = os.path.join(log_dir, "lfslite.log")
        fh = RotatingFileHandler(logfile, maxBytes=10 * 1024 * 1024, backupCount=5)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
            "%Y-%m-%d %H:%M:%S"
        ))
        _root_logger.addHandler(fh)


def action_logfile(log_dir: str, tag: str) -> logging.Handler:
    """
    Anexa um FileHandler em log_dir/<timestamp>-<tag>.log e o retorna;
    quem chamou remove com detach_handler() ao fim da ação.
    """
    os.makedirs(log_dir, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    path = os.path.join(log_dir, f"{stamp}-{tag}.log")
    fh = logging.FileHandler(path, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] [%(name)s] %(message)s"))
    _root_logger.addHandler(fh)
    return fh


def detach_handler(handler: logging.Handler) -> None:
    _root_logger.removeHandler(handler)
    handler.close()


# -------------------------
# API pública
# -------------------------
def get_logger(name: str = "lfslite"):
    """Obtém sub-logger (ex.: log.get_logger("fetch"))"""
    if name == "lfslite":
        return _root_logger
    return _root_logger.getChild(name)


def exception(msg: str):
    """Loga erro com traceback completo (apenas no nível debug)"""
    tb = traceback.format_exc()
    _root_logger.debug("%s\n%s", msg, tb)


def run_cmd(cmd: List[str], cwd: Optional[str] = None,
            env: Optional[Dict[str, str]] = None) -> Tuple[int, str]:
    """
    Executa comando externo registrando a saída (stdout+stderr) em tempo real.
    Retorna (returncode, saida).
    """
    logger = get_logger("cmd")
    logger.debug("Executando: %s%s", " ".join(cmd), f" (cwd={cwd})" if cwd else "")

    process = subprocess.Popen(
        cmd,
        cwd=cwd,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace",
        bufsize=1
    )

    lines = []
    for line in process.stdout:
        line = line.rstrip()
        lines.append(line)
        logger.debug("%s", line)

    process.wait()
    rc = process.returncode

    if rc != 0:
        logger.error("Comando falhou com código %s: %s", rc, " ".join(cmd))

    return rc, "\n".join(lines)


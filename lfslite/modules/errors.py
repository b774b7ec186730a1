# errors.py
"""
Taxonomia de erros do lfslite.

Todo erro de estágio é fatal para a invocação corrente; nenhum estágio tenta
de novo automaticamente. A CLI captura LfsliteError e sai com código != 0.
"""


class LfsliteError(Exception):
    """Base de todos os erros do lfslite"""
    pass


class ConfigError(LfsliteError):
    """Valor de configuração inválido"""
    pass


class RecipeError(LfsliteError):
    """Receita malformada ou ambígua"""
    pass


class FetchError(LfsliteError):
    """Falha de rede/git ou atualização git que não é fast-forward"""
    pass


class IntegrityError(FetchError):
    """SHA256 do artefato não confere"""
    pass


class UnsupportedFormatError(LfsliteError):
    """Extensão de arquivo sem rotina de extração"""
    pass


class PatchError(LfsliteError):
    """Patch não encontrado ou falhou ao aplicar"""
    pass


class BuildError(LfsliteError):
    """configure/compilação terminou com código != 0"""
    pass


class InstallError(LfsliteError):
    """Falha na ação de instalação"""
    pass


class NotInstalledError(LfsliteError):
    """Pacote ausente do registro"""
    pass


class HookError(LfsliteError):
    """Hook terminou com código != 0"""
    pass


__all__ = [
    "LfsliteError", "ConfigError", "RecipeError", "FetchError", "IntegrityError",
    "UnsupportedFormatError", "PatchError", "BuildError", "InstallError",
    "NotInstalledError", "HookError",
]

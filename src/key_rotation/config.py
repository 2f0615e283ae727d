"""Configuração do serviço de rotação de chaves."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Self

from .utils import KEY_FORMATS, parse_env_file

MIN_KEY_LENGTH = 16
MAX_KEY_LENGTH = 512


@dataclass
class RotationConfig:
    """Configuração do KeyRotationService.

    Attributes:
        key_length: Bytes de entropia (urlsafe/hex) ou caracteres (alphanumeric)
        key_format: Formato do valor gerado: "urlsafe", "hex" ou "alphanumeric"
        path_prefix: Prefixo opcional do caminho no cofre (e.g., "api-keys")
        audit_callback: Callback opcional para auditoria de eventos
        logger: Logger opcional para mensagens (usa logging padrão se None)
    """

    key_length: int = 32
    key_format: str = "urlsafe"
    path_prefix: str = ""
    audit_callback: Optional[Callable] = None
    logger: Optional[Any] = None  # logging.Logger

    def __post_init__(self) -> None:
        """Valida configuração após inicialização."""
        if isinstance(self.key_length, bool) or not isinstance(self.key_length, int):
            raise ValueError(f"key_length deve ser inteiro, recebido: {self.key_length!r}")

        if not MIN_KEY_LENGTH <= self.key_length <= MAX_KEY_LENGTH:
            raise ValueError(
                f"key_length deve estar entre {MIN_KEY_LENGTH} e {MAX_KEY_LENGTH}, "
                f"recebido: {self.key_length}"
            )

        if not isinstance(self.key_format, str):
            raise ValueError(f"key_format deve ser string, recebido: {self.key_format!r}")

        self.key_format = self.key_format.strip().lower()
        if self.key_format not in KEY_FORMATS:
            raise ValueError(
                f"Formato de chave '{self.key_format}' inválido. Opções: {list(KEY_FORMATS)}"
            )

        if not isinstance(self.path_prefix, str):
            raise ValueError(f"path_prefix deve ser string, recebido: {self.path_prefix!r}")

        self.path_prefix = self.path_prefix.strip().strip("/")

    @classmethod
    def from_environment(cls, prefix: str = "KEY_ROTATION", **kwargs: Any) -> Self:
        """Cria configuração a partir de variáveis de ambiente.

        Formato esperado (todas opcionais):
            KEY_ROTATION_LENGTH=48
            KEY_ROTATION_FORMAT=hex
            KEY_ROTATION_PATH_PREFIX=api-keys

        Args:
            prefix: Prefixo das variáveis (padrão: KEY_ROTATION)
            **kwargs: Argumentos adicionais para RotationConfig

        Returns:
            RotationConfig configurado a partir do ambiente

        Raises:
            ValueError: Se algum valor for inválido
        """
        return cls._from_mapping(os.environ, prefix=prefix, **kwargs)

    @classmethod
    def from_file(cls, filename: str, prefix: str = "KEY_ROTATION", **kwargs: Any) -> Self:
        """Cria configuração a partir de um arquivo .env.

        Raises:
            FileNotFoundError: Se o arquivo não existir
            ValueError: Se algum valor for inválido
        """
        env_path = Path(filename)
        if not env_path.exists():
            raise FileNotFoundError(f"Arquivo .env não encontrado: {filename}")

        return cls._from_mapping(parse_env_file(env_path), prefix=prefix, **kwargs)

    @classmethod
    def _from_mapping(
        cls, mapping: Mapping[str, str], prefix: str = "KEY_ROTATION", **kwargs: Any
    ) -> Self:
        """Cria configuração a partir de um mapeamento de variáveis."""
        values: Dict[str, Any] = {}

        length = mapping.get(f"{prefix}_LENGTH")
        if length:
            try:
                values["key_length"] = int(length.strip("\"'"))
            except ValueError as exc:
                raise ValueError(
                    f"{prefix}_LENGTH deve ser um número inteiro, recebido: {length!r}"
                ) from exc

        # Remover aspas (problema comum com dotenv)
        key_format = mapping.get(f"{prefix}_FORMAT")
        if key_format:
            values["key_format"] = key_format.strip("\"'")

        path_prefix = mapping.get(f"{prefix}_PATH_PREFIX")
        if path_prefix:
            values["path_prefix"] = path_prefix.strip("\"'")

        values.update(kwargs)
        return cls(**values)

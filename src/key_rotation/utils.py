"""Funções auxiliares para a rotação de chaves."""

import hashlib
import os
import secrets
import string
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional, TextIO

from dotenv import dotenv_values


ENV_CHECKSUM_KEY = "SECRET_STORE_CHECKSUM"

KEY_FORMATS = ("urlsafe", "hex", "alphanumeric")

_ALPHANUMERIC = string.ascii_letters + string.digits


def is_valid_key_id(key_id: Any) -> bool:
    """Indica se o identificador é uma string não vazia e não composta só de espaços."""
    return isinstance(key_id, str) and bool(key_id.strip())


def secret_path(key_id: str, prefix: str = "") -> str:
    """Deriva o caminho no cofre de segredos para um identificador.

    O identificador é usado literalmente como último segmento do caminho.

    Examples:
        >>> secret_path("svc-prod")
        'svc-prod'
        >>> secret_path("svc-prod", "/api-keys/")
        'api-keys/svc-prod'
    """
    prefix = prefix.strip("/")
    return f"{prefix}/{key_id}" if prefix else key_id


def generate_key(length: int = 32, key_format: str = "urlsafe") -> str:
    """Gera um novo valor de chave com o gerador criptográfico do sistema.

    Args:
        length: Bytes de entropia (urlsafe/hex) ou número de caracteres (alphanumeric)
        key_format: Um de "urlsafe", "hex" ou "alphanumeric"

    Returns:
        str: Valor da chave, nunca vazio

    Raises:
        ValueError: Se o formato for desconhecido ou o tamanho não for positivo
    """
    if length <= 0:
        raise ValueError(f"Tamanho da chave deve ser positivo, recebido: {length}")

    if key_format == "urlsafe":
        return secrets.token_urlsafe(length)
    if key_format == "hex":
        return secrets.token_hex(length)
    if key_format == "alphanumeric":
        return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))

    raise ValueError(f"Formato de chave desconhecido: {key_format!r}. Opções: {KEY_FORMATS}")


def fingerprint(value: str) -> str:
    """Retorna os 12 primeiros caracteres do SHA256 do valor, seguro para logs."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:12]


def escape_env_value(value: str) -> str:
    """Escapa barras e aspas para gravar o valor entre aspas duplas no .env."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def compute_env_checksum(values: Mapping[str, Optional[str]]) -> str:
    """Calcula o SHA256 das entradas do cofre em arquivo.

    As entradas são ordenadas por nome; o próprio checksum e valores None
    ficam de fora, então o resultado só muda quando alguma versão muda.
    """
    lines = [
        f"{key}={values[key]}"
        for key in sorted(values)
        if key != ENV_CHECKSUM_KEY and values[key] is not None
    ]
    return hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()


def parse_env_stream(stream: TextIO) -> Dict[str, str]:
    """Parseia um stream .env usando python-dotenv, descartando chaves sem valor."""
    return {key: value for key, value in dotenv_values(stream=stream).items() if value is not None}


def parse_env_file(path: Path) -> Dict[str, str]:
    """Parseia um arquivo .env usando python-dotenv.

    Raises:
        OSError: Se o arquivo não puder ser aberto
        UnicodeDecodeError: Se o conteúdo não for UTF-8 válido
    """
    with path.open("r", encoding="utf-8", errors="strict") as f:
        return parse_env_stream(f)


def dump_env_stream(stream: TextIO, values: Mapping[str, str]) -> None:
    """Reescreve o stream com as entradas ordenadas e o checksum atualizado."""
    entries = dict(values)
    entries[ENV_CHECKSUM_KEY] = compute_env_checksum(entries)

    stream.seek(0)
    stream.truncate()
    for key, value in sorted(entries.items()):
        stream.write(f'{key}="{escape_env_value(value)}"\n')


def _set_lock(file_handle: TextIO, locked: bool) -> None:
    """Aplica (locked=True) ou libera o lock exclusivo do arquivo."""
    if os.name == "nt":
        import msvcrt

        file_handle.seek(0)
        mode = msvcrt.LK_LOCK if locked else msvcrt.LK_UNLCK
        msvcrt.locking(file_handle.fileno(), mode, 1)
        return

    import fcntl

    fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX if locked else fcntl.LOCK_UN)


@contextmanager
def locked_file(path: Path) -> Iterator[TextIO]:
    """Abre o arquivo do cofre para leitura e escrita sob lock exclusivo.

    O arquivo é criado se não existir. Escritas concorrentes de outros
    processos esperam a liberação do lock.
    """
    file_handle = path.open("a+", encoding="utf-8", errors="strict")
    try:
        _set_lock(file_handle, True)
        try:
            yield file_handle
        finally:
            _set_lock(file_handle, False)
    finally:
        file_handle.close()

"""Cofres de segredos versionados consumidos pelo KeyRotationService.

O serviço depende apenas da operação ``write(path, value)``. Cada escrita
cria uma nova versão do segredo; versões anteriores nunca são sobrescritas.
"""

import base64
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .utils import (
    ENV_CHECKSUM_KEY,
    compute_env_checksum,
    dump_env_stream,
    locked_file,
    parse_env_file,
    parse_env_stream,
)


class SecretStoreError(Exception):
    """Falha reportada por um cofre de segredos."""

    pass


@runtime_checkable
class SecretStore(Protocol):
    """Capacidade de escrita versionada em um cofre de segredos."""

    def write(self, path: str, value: str) -> Optional[int]:
        """Grava ``value`` como nova versão em ``path``.

        Returns:
            Número da versão criada, ou None se o cofre não informar

        Raises:
            SecretStoreError: Se a escrita falhar
        """
        ...


class InMemorySecretStore:
    """Cofre versionado em memória, thread-safe.

    Útil para testes e desenvolvimento local. Versões começam em 1.
    """

    def __init__(self) -> None:
        self._versions: Dict[str, List[str]] = {}
        self._lock = RLock()

    def write(self, path: str, value: str) -> int:
        with self._lock:
            history = self._versions.setdefault(path, [])
            history.append(value)
            return len(history)

    def read(self, path: str, version: Optional[int] = None) -> str:
        """Lê uma versão do segredo (a mais recente se version for None).

        Raises:
            SecretStoreError: Se o caminho ou a versão não existirem
        """
        with self._lock:
            history = self._versions.get(path)
            if not history:
                raise SecretStoreError(f"Segredo não encontrado: {path}")

            if version is None:
                return history[-1]

            if not 1 <= version <= len(history):
                raise SecretStoreError(
                    f"Versão {version} não encontrada para {path}. "
                    f"Versões disponíveis: 1..{len(history)}"
                )
            return history[version - 1]

    def versions(self, path: str) -> int:
        """Retorna quantas versões existem para o caminho."""
        with self._lock:
            return len(self._versions.get(path, []))


class EnvFileSecretStore:
    """Cofre versionado em arquivo .env, com valores criptografados via Fernet.

    Cada versão é gravada como ``SECRET__<path-hex>__V<n>="<token fernet>"``.
    A chave Fernet é derivada da passphrase com PBKDF2-HMAC-SHA256. O arquivo
    carrega um checksum SHA256 verificado antes de cada escrita.

    Indicado para desenvolvimento local; em produção use um cofre real
    (e.g., VaultSecretStore).
    """

    def __init__(
        self,
        filename: str,
        passphrase: str,
        salt: bytes,
        kdf_iterations: int = 100_000,
    ):
        """Inicializa o cofre.

        Args:
            filename: Caminho do arquivo .env (criado na primeira escrita)
            passphrase: Segredo usado na derivação da chave Fernet
            salt: Salt da derivação (bytes)
            kdf_iterations: Número de iterações PBKDF2 (padrão: 100_000)
        """
        if not passphrase:
            raise ValueError("Passphrase do cofre não pode ser vazia")
        if not isinstance(salt, bytes) or not salt:
            raise ValueError("Salt do cofre deve ser bytes não vazios")

        self.path = Path(filename)
        self._fernet = self._derive_fernet(passphrase, salt, kdf_iterations)

    @staticmethod
    def _derive_fernet(passphrase: str, salt: bytes, iterations: int) -> Fernet:
        """Deriva chave Fernet usando PBKDF2."""
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=iterations,
        )
        derived = kdf.derive(passphrase.encode("utf-8"))
        return Fernet(base64.urlsafe_b64encode(derived))

    @staticmethod
    def _entry_prefix(path: str) -> str:
        # hex mantém o nome da variável válido para qualquer caminho
        return f"SECRET__{path.encode('utf-8').hex()}__V"

    @classmethod
    def _existing_versions(cls, data: Dict[str, str], path: str) -> List[int]:
        prefix = cls._entry_prefix(path)
        found = []
        for name in data:
            if name.startswith(prefix) and name[len(prefix):].isdigit():
                found.append(int(name[len(prefix):]))
        return sorted(found)

    def write(self, path: str, value: str) -> int:
        token = self._fernet.encrypt(value.encode("utf-8")).decode("ascii")

        try:
            with locked_file(self.path) as f:
                f.seek(0)
                data = parse_env_stream(f)

                checksum = data.get(ENV_CHECKSUM_KEY)
                if checksum and compute_env_checksum(data) != checksum:
                    raise SecretStoreError(f"Checksum do arquivo {self.path} inválido")

                existing = self._existing_versions(data, path)
                version = existing[-1] + 1 if existing else 1
                data[f"{self._entry_prefix(path)}{version}"] = token
                dump_env_stream(f, data)
        except (OSError, UnicodeDecodeError) as exc:
            raise SecretStoreError(f"Falha ao gravar em {self.path}: {exc}") from exc

        return version

    def read(self, path: str, version: Optional[int] = None) -> str:
        """Lê e descriptografa uma versão (a mais recente se version for None).

        Raises:
            SecretStoreError: Se o arquivo, o caminho ou a versão não existirem,
                ou se o token não puder ser descriptografado
        """
        try:
            data = parse_env_file(self.path)
        except (OSError, UnicodeDecodeError) as exc:
            raise SecretStoreError(f"Falha ao ler {self.path}: {exc}") from exc

        existing = self._existing_versions(data, path)
        if not existing:
            raise SecretStoreError(f"Segredo não encontrado: {path}")

        if version is None:
            version = existing[-1]
        elif version not in existing:
            raise SecretStoreError(f"Versão {version} não encontrada para {path}")

        token = data[f"{self._entry_prefix(path)}{version}"]
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except InvalidToken as exc:
            raise SecretStoreError(
                f"Falha ao descriptografar versão {version} de {path}"
            ) from exc

    def versions(self, path: str) -> int:
        """Retorna quantas versões existem para o caminho.

        Raises:
            SecretStoreError: Se o arquivo existir mas não puder ser lido
        """
        if not self.path.exists():
            return 0

        try:
            data = parse_env_file(self.path)
        except (OSError, UnicodeDecodeError) as exc:
            raise SecretStoreError(f"Falha ao ler {self.path}: {exc}") from exc
        return len(self._existing_versions(data, path))

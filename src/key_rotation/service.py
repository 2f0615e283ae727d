"""KeyRotationService - Rotação de chaves de API sobre um cofre de segredos."""

import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Optional

from .config import RotationConfig
from .stores import SecretStore
from .utils import fingerprint, generate_key, is_valid_key_id, secret_path


REDACTED = "<redacted>"


class AtomicCounter:
    """Contador thread-safe para as estatísticas do serviço.

    Rotações concorrentes incrementam os mesmos contadores; o lock garante
    que nenhum incremento se perca.
    """

    def __init__(self) -> None:
        """Inicializa o contador com zero."""
        self._value = 0
        self._lock = Lock()

    def increment(self) -> None:
        """Incrementa o contador em 1."""
        with self._lock:
            self._value += 1

    def value(self) -> int:
        """Retorna o valor atual do contador."""
        with self._lock:
            return self._value


class KeyRotationError(Exception):
    """Erro base da rotação de chaves."""

    pass


class InvalidKeyIdError(KeyRotationError, ValueError):
    """Identificador de chave nulo, vazio ou composto apenas de espaços."""

    pass


class StoreWriteError(KeyRotationError):
    """O cofre de segredos reportou falha ao gravar a nova versão.

    A exceção original fica disponível em ``__cause__``.

    Attributes:
        key_id: Identificador da chave cuja rotação falhou
        path: Caminho no cofre onde a escrita foi tentada
    """

    def __init__(self, key_id: str, path: str, message: str):
        super().__init__(message)
        self.key_id = key_id
        self.path = path


@dataclass(frozen=True)
class RotationResult:
    """Resultado imutável de uma rotação bem-sucedida.

    Attributes:
        id: Identificador informado pelo chamador
        key: Novo valor da chave (omitido do repr)
        version: Versão criada no cofre, quando o cofre a informa
    """

    id: str
    key: str = field(repr=False)
    version: Optional[int] = None


class KeyRotationService:
    """Rotaciona chaves de API gravando cada novo valor como versão no cofre.

    Cada chamada é independente: gera um valor novo, faz exatamente uma
    escrita e retorna o resultado. Não há retry, lock nem timeout próprios;
    chamadas concorrentes para o mesmo identificador devem ser serializadas
    pelo chamador se isso for necessário.

    Attributes:
        store: Cofre de segredos (qualquer objeto com ``write(path, value)``)
        config: Configuração do serviço
    """

    def __init__(
        self,
        store: SecretStore,
        config: Optional[RotationConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Inicializa o serviço.

        Args:
            store: Cofre de segredos fornecido pelo chamador
            config: Configuração (usa RotationConfig() se None)
            logger: Logger opcional; tem precedência sobre config.logger
        """
        if store is None:
            raise ValueError("Um cofre de segredos deve ser fornecido")

        self.store = store
        self.config = config or RotationConfig()
        self._logger = logger or self.config.logger or logging.getLogger(__name__)

        self._stats = {
            "rotations": AtomicCounter(),
            "failures": AtomicCounter(),
            "validation_failures": AtomicCounter(),
        }

    def secret_path_for(self, key_id: str) -> str:
        """Retorna o caminho no cofre para o identificador.

        Raises:
            InvalidKeyIdError: Se o identificador for inválido
        """
        if not is_valid_key_id(key_id):
            raise InvalidKeyIdError(
                f"Identificador de chave inválido: {key_id!r}. "
                "Esperado: string não vazia"
            )
        return secret_path(key_id, self.config.path_prefix)

    def rotate_key(self, key_id: str) -> RotationResult:
        """Gera uma nova chave e a grava como nova versão no cofre.

        Args:
            key_id: Identificador da chave a rotacionar

        Returns:
            RotationResult com o identificador e o novo valor

        Raises:
            InvalidKeyIdError: Se key_id for None, vazio ou só espaços
            StoreWriteError: Se o cofre reportar falha na escrita

        Examples:
            >>> result = service.rotate_key("svc-prod")
            >>> result.id
            'svc-prod'
        """
        try:
            path = self.secret_path_for(key_id)
        except InvalidKeyIdError:
            self._stats["validation_failures"].increment()
            self._logger.warning(
                "Rotação recusada: identificador de chave inválido",
                extra={"key_id": repr(key_id)},
            )
            raise

        new_key = generate_key(self.config.key_length, self.config.key_format)

        try:
            version = self.store.write(path, new_key)
        except Exception as e:
            self._stats["failures"].increment()
            # o cofre pode ecoar o valor recebido na mensagem de erro
            summary = f"{type(e).__name__}: {e}".replace(new_key, REDACTED)
            self._logger.error(
                f"Falha ao gravar nova versão da chave '{key_id}'",
                extra={"key_id": key_id, "path": path, "error": summary},
            )
            self._audit("rotation_failed", {"key_id": key_id, "path": path, "error": summary})
            raise StoreWriteError(
                key_id, path, f"Falha ao gravar chave '{key_id}' em '{path}': {summary}"
            ) from e

        self._stats["rotations"].increment()
        self._logger.info(
            f"Chave '{key_id}' rotacionada",
            extra={
                "key_id": key_id,
                "path": path,
                "version": version,
                "fingerprint": fingerprint(new_key),
            },
        )
        self._audit("rotation", {"key_id": key_id, "path": path, "version": version})

        return RotationResult(id=key_id, key=new_key, version=version)

    def _audit(self, event: str, metadata: Dict[str, Any]) -> None:
        """Registra evento de auditoria se callback configurado.

        Args:
            event: Nome do evento ("rotation" ou "rotation_failed")
            metadata: Metadados do evento, nunca contém o valor da chave
        """
        if self.config.audit_callback:
            try:
                self.config.audit_callback(event, metadata)
            except Exception as e:
                self._logger.warning(f"Erro no callback de auditoria: {e}")

    def get_statistics(self) -> dict:
        """Retorna estatísticas de uso.

        Returns:
            dict: Contadores de rotações, falhas de escrita e de validação
        """
        return {name: counter.value() for name, counter in self._stats.items()}

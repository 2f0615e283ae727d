"""key_rotation - Rotação de chaves de API sobre cofres de segredos versionados.

Este pacote fornece:
- KeyRotationService: valida o identificador, gera a nova chave e grava
  uma nova versão no cofre
- Geração de chaves com o gerador criptográfico do sistema
- Cofres em memória, em arquivo .env criptografado (Fernet) e HashiCorp Vault
- Auditoria configurável
"""

from .config import RotationConfig
from .service import (
    InvalidKeyIdError,
    KeyRotationError,
    KeyRotationService,
    RotationResult,
    StoreWriteError,
)
from .stores import EnvFileSecretStore, InMemorySecretStore, SecretStore, SecretStoreError
from .utils import generate_key, secret_path

__version__ = "0.1.0"

__all__ = [
    # Classes principais
    "KeyRotationService",
    "RotationResult",
    # Erros
    "KeyRotationError",
    "InvalidKeyIdError",
    "StoreWriteError",
    "SecretStoreError",
    # Cofres
    "SecretStore",
    "InMemorySecretStore",
    "EnvFileSecretStore",
    # Configuração
    "RotationConfig",
    # Utilidades
    "generate_key",
    "secret_path",
]

"""Exemplo de rotação de chaves de API com cofre em arquivo .env."""

import logging
import os
from pathlib import Path

from key_rotation import (
    EnvFileSecretStore,
    InvalidKeyIdError,
    KeyRotationService,
    RotationConfig,
)

# Configurar logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    """Demonstra rotação de chaves."""

    print("\n=== Key Rotation - Exemplo ===\n")

    env_file = Path("example_vault.env")

    try:
        _run(env_file)
    finally:
        if env_file.exists():
            env_file.unlink()
            print(f"\n✓ Arquivo de exemplo removido: {env_file}")

    print("\n=== Fim do exemplo ===\n")


def _run(env_file: Path) -> None:
    """Executa as rotações sobre o cofre em env_file."""
    # 1. Cofre local criptografado (em produção, use VaultSecretStore)
    print("1. Criando cofre local...")
    store = EnvFileSecretStore(
        str(env_file),
        passphrase=os.environ.get("EXAMPLE_VAULT_PASSPHRASE", "example-passphrase"),
        salt=os.urandom(16),
    )

    # 2. Configuração (variáveis KEY_ROTATION_* sobrescrevem os padrões)
    audit_log = []
    config = RotationConfig.from_environment(
        path_prefix="api-keys",
        audit_callback=lambda event, metadata: audit_log.append((event, metadata)),
        logger=logger,
    )
    service = KeyRotationService(store, config)

    # 3. Rotacionar duas vezes a mesma chave
    print("\n2. Rotacionando 'billing-service' duas vezes...")
    for _ in range(2):
        result = service.rotate_key("billing-service")
        print(f"   ✓ {result.id} -> versão {result.version}")

    # 4. Versões anteriores continuam no cofre
    print("\n3. Histórico no cofre:")
    path = service.secret_path_for("billing-service")
    print(f"   {path}: {store.versions(path)} versões")

    # 5. Identificador inválido falha antes de qualquer escrita
    print("\n4. Identificador inválido...")
    try:
        service.rotate_key("   ")
    except InvalidKeyIdError as e:
        print(f"   ✓ Recusado: {e}")

    print("\n5. Eventos de auditoria:")
    for event, metadata in audit_log:
        print(f"   {event}: {metadata}")

    print("\n6. Estatísticas:")
    for key, value in service.get_statistics().items():
        print(f"   {key}: {value}")


if __name__ == "__main__":
    main()

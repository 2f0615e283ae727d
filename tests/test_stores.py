"""Testes para os cofres de segredos."""

import pytest

from key_rotation import (
    EnvFileSecretStore,
    InMemorySecretStore,
    KeyRotationService,
    SecretStore,
    SecretStoreError,
    StoreWriteError,
)
from key_rotation.utils import ENV_CHECKSUM_KEY, parse_env_file

# Poucas iterações para manter os testes rápidos
FAST_KDF = 1_000


@pytest.fixture
def env_store(tmp_path):
    return EnvFileSecretStore(
        str(tmp_path / "secrets.env"), "passphrase", b"salt-de-teste", kdf_iterations=FAST_KDF
    )


def test_stores_implement_protocol(env_store):
    """Testa que os cofres satisfazem o protocolo SecretStore."""
    assert isinstance(InMemorySecretStore(), SecretStore)
    assert isinstance(env_store, SecretStore)


def test_in_memory_store_versions():
    """Testa versionamento do cofre em memória."""
    store = InMemorySecretStore()

    assert store.write("svc", "v1-value") == 1
    assert store.write("svc", "v2-value") == 2
    assert store.write("other", "x") == 1

    assert store.read("svc") == "v2-value"
    assert store.read("svc", version=1) == "v1-value"
    assert store.versions("svc") == 2
    assert store.versions("missing") == 0


def test_in_memory_store_read_errors():
    """Testa erros de leitura do cofre em memória."""
    store = InMemorySecretStore()

    with pytest.raises(SecretStoreError, match="Segredo não encontrado"):
        store.read("svc")

    store.write("svc", "value")
    with pytest.raises(SecretStoreError, match="Versão 3 não encontrada"):
        store.read("svc", version=3)
    with pytest.raises(SecretStoreError, match="Versão 0 não encontrada"):
        store.read("svc", version=0)


def test_env_file_store_write_and_read(env_store):
    """Testa gravação criptografada e leitura de versões."""
    assert env_store.write("api-keys/svc", "first") == 1
    assert env_store.write("api-keys/svc", "second") == 2

    assert env_store.read("api-keys/svc") == "second"
    assert env_store.read("api-keys/svc", version=1) == "first"
    assert env_store.versions("api-keys/svc") == 2
    assert env_store.versions("other") == 0


def test_env_file_store_encrypts_values(env_store):
    """Testa que o arquivo não contém valores em texto claro."""
    env_store.write("svc", "plaintext-secret")

    content = env_store.path.read_text()
    assert "plaintext-secret" not in content
    assert ENV_CHECKSUM_KEY in content


def test_env_file_store_preserves_other_variables(env_store):
    """Testa que variáveis existentes são preservadas."""
    env_store.path.write_text('EXISTING_VAR="value"\n')

    env_store.write("svc", "secret")

    data = parse_env_file(env_store.path)
    assert data["EXISTING_VAR"] == "value"
    assert env_store.read("svc") == "secret"


def test_env_file_store_paths_with_special_characters(env_store):
    """Testa caminhos com espaços e símbolos."""
    env_store.write("team a/key#1", "value-a")
    env_store.write("team a/key", "value-b")

    assert env_store.read("team a/key#1") == "value-a"
    assert env_store.read("team a/key") == "value-b"
    assert env_store.versions("team a/key") == 1


def test_env_file_store_detects_tampering(env_store):
    """Testa que checksum inválido impede novas escritas."""
    env_store.write("svc", "secret")
    env_store.path.write_text(env_store.path.read_text() + 'INJECTED="x"\n')

    with pytest.raises(SecretStoreError, match="Checksum do arquivo"):
        env_store.write("svc", "other")


def test_env_file_store_wrong_passphrase(env_store, tmp_path):
    """Testa leitura com passphrase errada."""
    env_store.write("svc", "secret")
    other = EnvFileSecretStore(
        str(env_store.path), "wrong", b"salt-de-teste", kdf_iterations=FAST_KDF
    )

    with pytest.raises(SecretStoreError, match="Falha ao descriptografar"):
        other.read("svc")


def test_env_file_store_read_errors(env_store):
    """Testa erros de leitura do cofre em arquivo."""
    with pytest.raises(SecretStoreError, match="Falha ao ler"):
        env_store.read("svc")

    env_store.write("svc", "secret")
    with pytest.raises(SecretStoreError, match="Segredo não encontrado"):
        env_store.read("other")
    with pytest.raises(SecretStoreError, match="Versão 2 não encontrada"):
        env_store.read("svc", version=2)


def test_env_file_store_write_error(tmp_path):
    """Testa falha de I/O na escrita."""
    store = EnvFileSecretStore(
        str(tmp_path / "missing-dir" / "secrets.env"), "p", b"s", kdf_iterations=FAST_KDF
    )

    with pytest.raises(SecretStoreError, match="Falha ao gravar"):
        store.write("svc", "secret")


def test_env_file_store_validation(tmp_path):
    """Testa validação de passphrase e salt."""
    with pytest.raises(ValueError, match="Passphrase"):
        EnvFileSecretStore(str(tmp_path / "a.env"), "", b"salt")

    with pytest.raises(ValueError, match="Salt"):
        EnvFileSecretStore(str(tmp_path / "a.env"), "p", "salt")


def test_service_with_env_file_store(env_store):
    """Testa rotação ponta a ponta com o cofre em arquivo."""
    service = KeyRotationService(env_store)

    first = service.rotate_key("svc-prod")
    second = service.rotate_key("svc-prod")

    assert second.version == 2
    assert env_store.read("svc-prod", version=first.version) == first.key
    assert env_store.read("svc-prod") == second.key


def test_service_with_env_file_store_failure(tmp_path):
    """Testa que falha de I/O do cofre em arquivo vira StoreWriteError."""
    store = EnvFileSecretStore(
        str(tmp_path / "missing-dir" / "secrets.env"), "p", b"s", kdf_iterations=FAST_KDF
    )

    with pytest.raises(StoreWriteError) as exc_info:
        KeyRotationService(store).rotate_key("svc-prod")

    assert isinstance(exc_info.value.__cause__, SecretStoreError)


def test_env_file_store_invalid_utf8(env_store):
    """Testa que arquivo com UTF-8 inválido vira SecretStoreError."""
    env_store.path.write_bytes(b'X="\xff\xfe"\n')

    with pytest.raises(SecretStoreError, match="Falha ao gravar") as exc_info:
        env_store.write("svc", "secret")
    assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)

    with pytest.raises(SecretStoreError, match="Falha ao ler"):
        env_store.read("svc")

    with pytest.raises(SecretStoreError, match="Falha ao ler"):
        env_store.versions("svc")


def test_env_file_store_path_is_directory(tmp_path):
    """Testa que um diretório no lugar do arquivo vira SecretStoreError."""
    store = EnvFileSecretStore(str(tmp_path), "p", b"s", kdf_iterations=FAST_KDF)

    with pytest.raises(SecretStoreError, match="Falha ao ler") as exc_info:
        store.versions("svc")
    assert isinstance(exc_info.value.__cause__, OSError)

    with pytest.raises(SecretStoreError, match="Falha ao ler"):
        store.read("svc")

    with pytest.raises(SecretStoreError, match="Falha ao gravar"):
        store.write("svc", "secret")

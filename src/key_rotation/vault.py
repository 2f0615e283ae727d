"""Adaptador HashiCorp Vault (KV v2) para o KeyRotationService."""

from typing import Any, Optional, Self

import hvac
from hvac.exceptions import VaultError

from .stores import SecretStoreError


class VaultSecretStore:
    """Grava segredos no engine KV v2 do Vault.

    O KV v2 mantém o histórico de versões; cada escrita cria uma nova versão
    e o número retornado pelo servidor é repassado ao chamador.

    Attributes:
        client: Cliente hvac já autenticado
        mount_point: Ponto de montagem do engine KV v2 (padrão: "secret")
        field: Nome do campo que recebe o valor da chave (padrão: "key")
    """

    def __init__(self, client: Any, mount_point: str = "secret", field: str = "key"):
        self.client = client
        self.mount_point = mount_point
        self.field = field

    @classmethod
    def from_url(cls, url: str, token: str, **kwargs: Any) -> Self:
        """Cria o adaptador com um hvac.Client autenticado por token.

        Args:
            url: Endereço do Vault (e.g., "https://vault.example.com:8200")
            token: Token de acesso
            **kwargs: mount_point e field repassados ao construtor
        """
        return cls(hvac.Client(url=url, token=token), **kwargs)

    def write(self, path: str, value: str) -> Optional[int]:
        try:
            response = self.client.secrets.kv.v2.create_or_update_secret(
                path=path,
                secret={self.field: value},
                mount_point=self.mount_point,
            )
        except (VaultError, OSError) as exc:
            # requests.RequestException também é OSError
            raise SecretStoreError(
                f"Vault recusou a escrita em {self.mount_point}/{path}: {exc}"
            ) from exc

        if isinstance(response, dict):
            version = (response.get("data") or {}).get("version")
            if isinstance(version, int):
                return version
        return None

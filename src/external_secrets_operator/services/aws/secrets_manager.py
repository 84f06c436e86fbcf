"""AWS Secrets Manager backend."""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ...constants import BACKEND_SECRETS_MANAGER
from ...models import FetchedValue
from ...utils.errors import BackendNotFoundError
from ..backends.base import backend_call, last_segment
from .session import translate_boto_error, translate_client_error

logger = logging.getLogger(__name__)


class SecretsManagerBackend:
    """Secrets Manager backend.

    ``get_secret_value`` without a version selector resolves the
    ``AWSCURRENT`` stage, so older versions never show up.
    """

    backend_type = BACKEND_SECRETS_MANAGER

    def __init__(self, client: Any, region: str) -> None:
        self.client = client
        self.region = region

    def fetch_one(self, key: str) -> FetchedValue:
        with backend_call(self.backend_type, "fetch_one", key):
            return self._get_secret_value(key)

    def fetch_path(self, path: str, recursive: bool = False) -> list[tuple[str, FetchedValue]]:
        """Fetch every secret whose name starts with ``path/``."""
        prefix = path.rstrip("/") + "/"
        with backend_call(self.backend_type, "fetch_path", path):
            names: list[str] = []
            try:
                paginator = self.client.get_paginator("list_secrets")
                pages = paginator.paginate(Filters=[{"Key": "name", "Values": [prefix]}])
                for page in pages:
                    for entry in page.get("SecretList", []):
                        name = entry["Name"]
                        # the name filter is a prefix match on words, keep direct children only
                        if name.startswith(prefix) and "/" not in name[len(prefix):]:
                            names.append(name)
            except ClientError as e:
                raise translate_client_error(e, path) from e
            except BotoCoreError as e:
                raise translate_boto_error(e, path) from e

            if not names:
                raise BackendNotFoundError(f"no secrets found under path {path}", key=path)

            return [(last_segment(name), self._get_secret_value(name)) for name in sorted(names)]

    def _get_secret_value(self, key: str) -> FetchedValue:
        try:
            response = self.client.get_secret_value(SecretId=key)
        except ClientError as e:
            raise translate_client_error(e, key) from e
        except BotoCoreError as e:
            raise translate_boto_error(e, key) from e

        if response.get("SecretString") is not None:
            value = response["SecretString"].encode("utf-8")
        else:
            value = bytes(response.get("SecretBinary") or b"")

        return FetchedValue(
            value=value,
            fingerprint=str(response.get("VersionId", "")),
            source=response.get("Name", key),
        )

"""AWS Systems Manager Parameter Store backend."""

from __future__ import annotations

import logging
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ...constants import BACKEND_SYSTEM_MANAGER
from ...models import FetchedValue
from ...utils.errors import BackendNotFoundError
from ..backends.base import backend_call, last_segment
from .session import translate_boto_error, translate_client_error

logger = logging.getLogger(__name__)


class SystemManagerBackend:
    """Parameter Store backend.

    ``get_parameter`` and ``get_parameters_by_path`` only ever return the
    current version of a parameter, however many versions SSM retains.
    """

    backend_type = BACKEND_SYSTEM_MANAGER

    def __init__(self, client: Any, region: str) -> None:
        """Initialize the backend.

        Args:
            client: boto3 ``ssm`` client scoped to ``region``
            region: AWS region of the client
        """
        self.client = client
        self.region = region

    def fetch_one(self, key: str) -> FetchedValue:
        """Fetch a single decrypted parameter."""
        with backend_call(self.backend_type, "fetch_one", key):
            try:
                response = self.client.get_parameter(Name=key, WithDecryption=True)
            except ClientError as e:
                raise translate_client_error(e, key) from e
            except BotoCoreError as e:
                raise translate_boto_error(e, key) from e

            return self._to_fetched_value(response["Parameter"])

    def fetch_path(self, path: str, recursive: bool = False) -> list[tuple[str, FetchedValue]]:
        """Fetch every parameter under ``path``, paging transparently."""
        with backend_call(self.backend_type, "fetch_path", path):
            entries: list[tuple[str, FetchedValue]] = []
            try:
                paginator = self.client.get_paginator("get_parameters_by_path")
                for page in paginator.paginate(Path=path, Recursive=recursive, WithDecryption=True):
                    for parameter in page.get("Parameters", []):
                        entries.append((last_segment(parameter["Name"]), self._to_fetched_value(parameter)))
            except ClientError as e:
                raise translate_client_error(e, path) from e
            except BotoCoreError as e:
                raise translate_boto_error(e, path) from e

            if not entries:
                raise BackendNotFoundError(f"no parameters found under path {path}", key=path)

            logger.debug(f"Fetched {len(entries)} parameters under {path} in {self.region}")
            return entries

    @staticmethod
    def _to_fetched_value(parameter: dict[str, Any]) -> FetchedValue:
        return FetchedValue(
            value=parameter.get("Value", "").encode("utf-8"),
            fingerprint=str(parameter.get("Version", "")),
            source=parameter["Name"],
        )

"""Utilities for managing target Kubernetes secrets."""

from __future__ import annotations

import base64

from kubernetes import client

from ..constants import (
    API_GROUP_VERSION,
    CONTROLLER_NAME,
    FIELD_MANAGER,
    KIND_EXTERNAL_SECRET,
    LABEL_EXTERNAL_SECRET_NAME,
    LABEL_MANAGED_BY,
)
from ..models import SecretRequest

SECRET_CREATED = "created"
SECRET_UPDATED = "updated"
SECRET_UNCHANGED = "unchanged"


def encode_secret_data(data: dict[str, bytes]) -> dict[str, str]:
    """Base64-encode raw values for the Secret ``data`` field."""
    return {key: base64.b64encode(value).decode("ascii") for key, value in data.items()}


def decode_secret_data(data: dict[str, str] | None) -> dict[str, bytes]:
    """Decode a Secret ``data`` field into raw values."""
    return {key: base64.b64decode(value) for key, value in (data or {}).items()}


def build_owner_references(request: SecretRequest) -> list[client.V1OwnerReference]:
    """Owner reference tying the target Secret to its ExternalSecret."""
    if not request.uid:
        return []
    return [
        client.V1OwnerReference(
            api_version=API_GROUP_VERSION,
            kind=KIND_EXTERNAL_SECRET,
            name=request.name,
            uid=request.uid,
            controller=True,
            block_owner_deletion=True,
        )
    ]


def build_target_secret(
    request: SecretRequest,
    data: dict[str, bytes],
    resource_version: str | None = None,
) -> client.V1Secret:
    """Build the target Secret for a SecretRequest.

    Args:
        request: Parsed ExternalSecret
        data: Raw values keyed by target name
        resource_version: Version of the existing Secret when replacing

    Returns:
        Secret body with base64-encoded data
    """
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(
            name=request.name,
            namespace=request.namespace,
            labels={
                LABEL_MANAGED_BY: CONTROLLER_NAME,
                LABEL_EXTERNAL_SECRET_NAME: request.name,
            },
            owner_references=build_owner_references(request),
            resource_version=resource_version,
        ),
        type="Opaque",
        data=encode_secret_data(data),
    )


def read_secret(api: client.CoreV1Api, namespace: str, secret_name: str) -> client.V1Secret | None:
    """Read a Secret, returning None when it does not exist."""
    try:
        return api.read_namespaced_secret(name=secret_name, namespace=namespace)
    except client.exceptions.ApiException as e:
        if e.status == 404:
            return None
        raise


def _is_managed(secret: client.V1Secret) -> bool:
    labels = (secret.metadata.labels if secret.metadata else None) or {}
    return labels.get(LABEL_MANAGED_BY) == CONTROLLER_NAME


def upsert_secret(
    api: client.CoreV1Api,
    request: SecretRequest,
    data: dict[str, bytes],
) -> str:
    """Create the target Secret or replace it when its content differs.

    Returns:
        One of SECRET_CREATED, SECRET_UPDATED, SECRET_UNCHANGED

    Raises:
        client.exceptions.ApiException: If the API rejects the write
    """
    existing = read_secret(api, request.namespace, request.name)

    if existing is None:
        api.create_namespaced_secret(
            namespace=request.namespace,
            body=build_target_secret(request, data),
            field_manager=FIELD_MANAGER,
        )
        return SECRET_CREATED

    if decode_secret_data(existing.data) == data and _is_managed(existing):
        return SECRET_UNCHANGED

    resource_version = existing.metadata.resource_version if existing.metadata else None
    api.replace_namespaced_secret(
        name=request.name,
        namespace=request.namespace,
        body=build_target_secret(request, data, resource_version),
        field_manager=FIELD_MANAGER,
    )
    return SECRET_UPDATED

"""Builder for SecretRequest instances from ExternalSecret objects."""

from __future__ import annotations

from typing import Any

from ..constants import AWS_BACKENDS, BACKEND_SYSTEM_MANAGER, SUPPORTED_BACKENDS
from ..models import DataItem, FetchResult, SecretRequest
from ..utils.errors import InvalidSpecError


def create_data_item_from_spec(item: dict[str, Any], index: int) -> DataItem:
    """Create a DataItem from one ``spec.data`` entry.

    Args:
        item: Raw data entry
        index: Position of the entry, used in error messages

    Returns:
        Parsed data item

    Raises:
        InvalidSpecError: If the entry is malformed
    """
    if not isinstance(item, dict):
        raise InvalidSpecError(f"data[{index}] must be an object")

    key = item.get("key")
    path = item.get("path")

    if key and path:
        raise InvalidSpecError(f"data[{index}] must set only one of key and path")
    if not key and not path:
        raise InvalidSpecError(f"data[{index}] must set key or path")

    if key:
        name = item.get("name")
        if not name:
            raise InvalidSpecError(f"data[{index}] with key {key} requires name")
        if item.get("recursive"):
            raise InvalidSpecError(f"data[{index}] recursive is only valid with path")
        return DataItem(
            key=key,
            name=name,
            property_name=item.get("property"),
            is_binary=bool(item.get("isBinary", False)),
        )

    if item.get("property"):
        raise InvalidSpecError(f"data[{index}] property is only valid with key")
    return DataItem(
        path=path,
        is_binary=bool(item.get("isBinary", False)),
        recursive=bool(item.get("recursive", False)),
    )


def create_secret_request_from_body(body: dict[str, Any], default_region: str) -> SecretRequest:
    """Create a SecretRequest from an ExternalSecret object.

    Args:
        body: ExternalSecret object (metadata and spec)
        default_region: Controller home region, used when spec.region is absent

    Returns:
        Validated SecretRequest

    Raises:
        InvalidSpecError: If required fields are missing or inconsistent
    """
    meta = body.get("metadata", {})
    spec = body.get("spec") or {}

    backend_type = spec.get("backendType")
    if not backend_type:
        raise InvalidSpecError("backendType is required")
    if backend_type not in SUPPORTED_BACKENDS:
        raise InvalidSpecError(f"Unsupported backendType: {backend_type}")

    role_arn = spec.get("roleArn") or None
    if role_arn and backend_type not in AWS_BACKENDS:
        raise InvalidSpecError(f"roleArn is not supported for backendType {backend_type}")

    raw_data = spec.get("data") or []
    if not raw_data:
        raise InvalidSpecError("at least one data item is required")

    data = tuple(create_data_item_from_spec(item, idx) for idx, item in enumerate(raw_data))

    for item in data:
        if item.recursive and backend_type != BACKEND_SYSTEM_MANAGER:
            raise InvalidSpecError(f"recursive path listing is not supported for backendType {backend_type}")

    names = [item.name for item in data if not item.is_path]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise InvalidSpecError(f"duplicate target names: {', '.join(duplicates)}")

    poll_interval = spec.get("pollIntervalMillis")
    if poll_interval is not None:
        try:
            poll_interval = int(poll_interval)
        except (TypeError, ValueError) as e:
            raise InvalidSpecError("pollIntervalMillis must be an integer") from e
        if poll_interval <= 0:
            raise InvalidSpecError("pollIntervalMillis must be positive")

    return SecretRequest(
        name=meta.get("name", ""),
        namespace=meta.get("namespace", "default"),
        backend_type=backend_type,
        region=spec.get("region") or default_region,
        role_arn=role_arn,
        data=data,
        poll_interval_millis=poll_interval,
        uid=meta.get("uid"),
        generation=meta.get("generation", 0),
    )


def add_fetched_values(
    result: FetchResult,
    entries: list[tuple[str, Any]],
    source: str,
) -> None:
    """Merge fetched entries into a result, rejecting target name collisions.

    Raises:
        InvalidSpecError: If a target name is already present
    """
    for target_name, fetched in entries:
        if target_name in result:
            raise InvalidSpecError(
                f"target name {target_name} from {source} collides with another data item"
            )
        result.add(target_name, fetched)

"""boto3 session and client construction for AWS backends."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotocoreConnectionError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    ReadTimeoutError,
)

from ...utils.errors import (
    BackendAccessDeniedError,
    BackendError,
    BackendNotFoundError,
    TransientBackendError,
)

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {
    "ParameterNotFound",
    "ParameterVersionNotFound",
    "ResourceNotFoundException",
}

ACCESS_DENIED_CODES = {
    "AccessDenied",
    "AccessDeniedException",
    "UnrecognizedClientException",
    "InvalidClientTokenId",
    "ExpiredToken",
    "ExpiredTokenException",
    "DecryptionFailure",
    "KMSAccessDeniedException",
}

# Credentials are refreshed this long before STS says they expire
CREDENTIAL_REFRESH_MARGIN = timedelta(minutes=5)


def make_client_config(timeout_seconds: float) -> Config:
    """Build a botocore config bounding every call by ``timeout_seconds``."""
    return Config(
        connect_timeout=timeout_seconds,
        read_timeout=timeout_seconds,
        retries={"max_attempts": 3, "mode": "standard"},
    )


def assume_role(
    role_arn: str,
    region: str,
    session_name: str,
    timeout_seconds: float,
) -> dict[str, Any]:
    """Assume an IAM role and return its temporary credentials.

    Raises:
        BackendAccessDeniedError: If the role cannot be assumed
        TransientBackendError: On network or throttling failures
    """
    sts = boto3.client("sts", region_name=region, config=make_client_config(timeout_seconds))
    try:
        response = sts.assume_role(RoleArn=role_arn, RoleSessionName=session_name)
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        if code in ("Throttling", "ThrottlingException", "RequestLimitExceeded"):
            raise TransientBackendError(f"Throttled assuming role {role_arn}", key=role_arn) from e
        raise BackendAccessDeniedError(f"Unable to assume role {role_arn}: {code}", key=role_arn) from e
    except BotoCoreError as e:
        raise translate_boto_error(e, role_arn) from e
    logger.info(f"Assumed role {role_arn} in region {region}")
    return response["Credentials"]


def create_aws_client(
    service_name: str,
    region: str,
    timeout_seconds: float,
    role_arn: str | None = None,
    session_name: str = "external-secrets-operator",
) -> tuple[Any, datetime | None]:
    """Create a boto3 client, assuming ``role_arn`` first when given.

    Returns:
        Tuple of (client, refresh_at). ``refresh_at`` is None for clients
        using the default credential chain.
    """
    config = make_client_config(timeout_seconds)
    if not role_arn:
        return boto3.client(service_name, region_name=region, config=config), None

    credentials = assume_role(role_arn, region, session_name, timeout_seconds)
    session = boto3.session.Session(
        aws_access_key_id=credentials["AccessKeyId"],
        aws_secret_access_key=credentials["SecretAccessKey"],
        aws_session_token=credentials["SessionToken"],
        region_name=region,
    )
    expiration = credentials.get("Expiration")
    refresh_at = None
    if isinstance(expiration, datetime):
        if expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)
        refresh_at = expiration - CREDENTIAL_REFRESH_MARGIN
    return session.client(service_name, config=config), refresh_at


def translate_client_error(error: ClientError, key: str) -> BackendError:
    """Map a botocore ClientError onto the backend error taxonomy."""
    code = error.response.get("Error", {}).get("Code", "")
    if code in NOT_FOUND_CODES:
        return BackendNotFoundError(f"{key} not found", key=key)
    if code in ACCESS_DENIED_CODES:
        return BackendAccessDeniedError(f"access denied reading {key} ({code})", key=key)
    return TransientBackendError(f"failed reading {key} ({code or 'unknown error'})", key=key)


def translate_boto_error(error: BotoCoreError, key: str) -> BackendError:
    """Map a botocore transport error onto the backend error taxonomy."""
    if isinstance(error, NoCredentialsError):
        return BackendAccessDeniedError(f"no AWS credentials available reading {key}", key=key)
    if isinstance(error, (ReadTimeoutError, ConnectTimeoutError)):
        return TransientBackendError(f"timed out reading {key}", key=key)
    if isinstance(error, (EndpointConnectionError, BotocoreConnectionError)):
        return TransientBackendError(f"could not connect to backend reading {key}", key=key)
    return TransientBackendError(f"failed reading {key}: {type(error).__name__}", key=key)

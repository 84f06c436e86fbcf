"""Kubernetes API access used by the reconciler."""

from __future__ import annotations

import logging
import time
from typing import Any

from kubernetes import client, config
from urllib3.exceptions import HTTPError

from .. import metrics
from ..constants import API_GROUP, API_VERSION, FIELD_MANAGER, PLURAL_EXTERNAL_SECRETS
from ..models import SecretRequest
from ..utils.cache import get_cached_object, make_cache_key, set_cached_object
from ..utils.errors import ClusterApiError, WriteFailedError, sanitize_exception
from ..utils.secrets import read_secret, upsert_secret

logger = logging.getLogger(__name__)


def load_kube_config() -> None:
    """Load in-cluster config, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


class ClusterGateway:
    """Reads namespaces and writes target Secrets and ExternalSecret status."""

    def __init__(
        self,
        core_api: client.CoreV1Api | None = None,
        custom_api: client.CustomObjectsApi | None = None,
    ) -> None:
        if core_api is None or custom_api is None:
            load_kube_config()
        self.core_api = core_api or client.CoreV1Api()
        self.custom_api = custom_api or client.CustomObjectsApi()

    def read_namespace(self, name: str) -> dict[str, Any]:
        """Read a namespace's metadata, cached for K8S_CACHE_TTL_SECONDS.

        Raises:
            ClusterApiError: If the namespace cannot be read
        """
        cache_key = make_cache_key("Namespace", "", name)
        cached = get_cached_object(cache_key)
        if cached is not None:
            metrics.api_call_total.labels(operation="read_namespace", result="cache_hit").inc()
            return cached

        try:
            namespace = self.core_api.read_namespace(name=name)
        except client.exceptions.ApiException as e:
            metrics.api_call_total.labels(operation="read_namespace", result="error").inc()
            raise ClusterApiError(f"unable to read namespace {name}: {e.reason}", status=e.status) from e
        except HTTPError as e:
            metrics.api_call_total.labels(operation="read_namespace", result="error").inc()
            raise ClusterApiError(
                f"unable to reach the API server reading namespace {name}: {sanitize_exception(e)}"
            ) from e

        metrics.api_call_total.labels(operation="read_namespace", result="success").inc()
        meta = namespace.metadata
        result = {
            "metadata": {
                "name": name,
                "annotations": dict((meta.annotations if meta else None) or {}),
            }
        }
        set_cached_object(cache_key, result)
        return result

    def secret_exists(self, namespace: str, name: str) -> bool:
        try:
            return read_secret(self.core_api, namespace, name) is not None
        except client.exceptions.ApiException as e:
            metrics.api_call_total.labels(operation="read_secret", result="error").inc()
            raise ClusterApiError(f"unable to read secret {namespace}/{name}: {e.reason}", status=e.status) from e
        except HTTPError as e:
            metrics.api_call_total.labels(operation="read_secret", result="error").inc()
            raise ClusterApiError(
                f"unable to reach the API server reading secret {namespace}/{name}: {sanitize_exception(e)}"
            ) from e

    def write_secret(self, request: SecretRequest, data: dict[str, bytes]) -> str:
        """Create or replace the target Secret.

        Returns:
            "created", "updated" or "unchanged"

        Raises:
            WriteFailedError: If the API rejects the write or cannot be reached
        """
        start_time = time.time()
        try:
            result = upsert_secret(self.core_api, request, data)
        except client.exceptions.ApiException as e:
            metrics.secret_writes_total.labels(operation="upsert", result="error").inc()
            raise WriteFailedError(
                f"unable to write secret {request.namespace}/{request.name}: {e.reason}",
                status=e.status,
            ) from e
        except HTTPError as e:
            metrics.secret_writes_total.labels(operation="upsert", result="error").inc()
            raise WriteFailedError(
                f"unable to reach the API server writing secret {request.namespace}/{request.name}: {sanitize_exception(e)}"
            ) from e
        metrics.secret_writes_total.labels(operation="upsert", result=result).inc()
        logger.debug(f"Secret {request.key} {result} in {time.time() - start_time:.3f}s")
        return result

    def write_status(self, namespace: str, name: str, status: dict[str, Any]) -> None:
        """Merge-patch the ExternalSecret status subresource.

        Raises:
            WriteFailedError: If the API rejects the patch or cannot be reached
        """
        try:
            self.custom_api.patch_namespaced_custom_object_status(
                group=API_GROUP,
                version=API_VERSION,
                namespace=namespace,
                plural=PLURAL_EXTERNAL_SECRETS,
                name=name,
                body={"status": status},
                field_manager=FIELD_MANAGER,
            )
        except client.exceptions.ApiException as e:
            metrics.api_call_total.labels(operation="patch_status", result="error").inc()
            if e.status == 404:
                # Resource deleted while the cycle ran
                logger.info(f"ExternalSecret {namespace}/{name} is gone, dropping status update")
                return
            raise WriteFailedError(
                f"unable to write status of {namespace}/{name}: {sanitize_exception(e)}",
                status=e.status,
            ) from e
        except HTTPError as e:
            metrics.api_call_total.labels(operation="patch_status", result="error").inc()
            raise WriteFailedError(
                f"unable to reach the API server writing status of {namespace}/{name}: {sanitize_exception(e)}"
            ) from e
        metrics.api_call_total.labels(operation="patch_status", result="success").inc()

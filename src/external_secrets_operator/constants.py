"""Constants for the External Secrets Operator."""

# API Group
API_GROUP = "kubernetes-client.io"
API_VERSION = "v1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_EXTERNAL_SECRET = "ExternalSecret"
PLURAL_EXTERNAL_SECRETS = "externalsecrets"

# Backend types
BACKEND_SYSTEM_MANAGER = "systemManager"
BACKEND_SECRETS_MANAGER = "secretsManager"
BACKEND_VAULT = "vault"
AWS_BACKENDS = (BACKEND_SYSTEM_MANAGER, BACKEND_SECRETS_MANAGER)
SUPPORTED_BACKENDS = (BACKEND_SYSTEM_MANAGER, BACKEND_SECRETS_MANAGER, BACKEND_VAULT)

# Labels
LABEL_MANAGED_BY = f"externalsecrets.{API_GROUP}/managed-by"
LABEL_EXTERNAL_SECRET_NAME = f"externalsecrets.{API_GROUP}/name"

# Annotations
ANNOTATION_PERMITTED_ROLE = "iam.amazonaws.com/permitted"
ANNOTATION_PERMITTED_KEY_NAME = f"externalsecrets.{API_GROUP}/permitted-key-name"

# Field Manager
FIELD_MANAGER = "external-secrets-operator"
CONTROLLER_NAME = "external-secrets-operator"

# Condition Types
COND_READY = "Ready"

# Sync outcomes recorded in status.outcome
OUTCOME_SUCCESS = "success"
OUTCOME_UNCHANGED = "unchanged"
OUTCOME_POLICY_DENIED = "policy-denied"
OUTCOME_INVALID_SPEC = "invalid-spec"
OUTCOME_BACKEND_ERROR = "backend-error"
OUTCOME_WRITE_FAILED = "write-failed"
OUTCOME_CLUSTER_ERROR = "cluster-error"

# Status messages
STATUS_SUCCESS = "SUCCESS"
STATUS_ERROR = "ERROR"
MESSAGE_UNCHANGED = "The parameter has not changed since last time"
MESSAGE_ROLE_NOT_PERMITTED = "namespace does not allow to assume role {role_arn}"
MESSAGE_KEY_NOT_PERMITTED = "key name {key} does not match namespace allowed pattern {pattern}"

# Event Reasons
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_POLICY_DENIED = "PolicyDenied"
EVENT_REASON_SECRET_CREATED = "SecretCreated"
EVENT_REASON_SECRET_UPDATED = "SecretUpdated"

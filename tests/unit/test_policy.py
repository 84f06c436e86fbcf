"""Tests for the namespace permission policy."""

from __future__ import annotations

import pytest

from external_secrets_operator.models import DataItem, SecretRequest
from external_secrets_operator.reconciler import policy
from external_secrets_operator.utils.errors import PolicyDeniedError


def namespace(**annotations: str) -> dict:
    return {"metadata": {"name": "team-a", "annotations": annotations}}


def role_namespace(pattern: str) -> dict:
    return namespace(**{"iam.amazonaws.com/permitted": pattern})


def make_request(role_arn: str | None = None, keys: tuple[str, ...] = ("/app/password",)) -> SecretRequest:
    return SecretRequest(
        name="db",
        namespace="team-a",
        backend_type="systemManager",
        region="us-west-2",
        data=tuple(DataItem(key=key, name=key.rsplit("/", 1)[-1]) for key in keys),
        role_arn=role_arn,
    )


class TestIsPermitted:
    """Test cases for role permission."""

    def test_no_role_always_permitted(self):
        """Test that a request without a role is permitted."""
        assert policy.is_permitted(role_namespace("^nothing$"), None) is True

    @pytest.mark.parametrize("annotations", [{}, {"iam.amazonaws.com/permitted": ""}, {"iam.amazonaws.com/permitted": ".*"}])
    def test_unrestricted_namespace(self, annotations):
        """Test that missing, empty or match-all annotations permit any role."""
        assert policy.is_permitted(namespace(**annotations), "arn:aws:iam::1:role/anything") is True

    def test_missing_namespace_object(self):
        """Test that an unreadable namespace body places no restriction."""
        assert policy.is_permitted(None, "arn:aws:iam::1:role/anything") is True

    def test_pattern_denies_other_roles(self):
        """Test that ^(foo|bar) denies let-me-be-root."""
        assert policy.is_permitted(role_namespace("^(foo|bar)"), "let-me-be-root") is False

    def test_pattern_permits_matching_role(self):
        """Test that ^(foo|bar) permits foo and bar."""
        ns = role_namespace("^(foo|bar)")
        assert policy.is_permitted(ns, "foo") is True
        assert policy.is_permitted(ns, "bar") is True

    def test_match_covers_whole_arn(self):
        """Test that the pattern must match the entire ARN, not a prefix or substring."""
        ns = role_namespace("arn:aws:iam::1:role/app")
        assert policy.is_permitted(ns, "arn:aws:iam::1:role/app") is True
        assert policy.is_permitted(ns, "arn:aws:iam::1:role/app-admin") is False
        assert policy.is_permitted(role_namespace("role/app"), "arn:aws:iam::1:role/app") is False
        assert policy.is_permitted(role_namespace("arn:aws:iam::1:role/app-.*"), "arn:aws:iam::1:role/app-admin") is True

    def test_invalid_pattern_denies(self):
        """Test that an unparsable pattern permits nothing."""
        assert policy.is_permitted(role_namespace("(unclosed"), "arn:aws:iam::1:role/app") is False


class TestEvaluate:
    """Test cases for evaluate and enforce."""

    def test_role_denial_message(self):
        """Test the denial message names the role."""
        decision = policy.evaluate(role_namespace("^(foo|bar)"), make_request(role_arn="let-me-be-root"))

        assert decision.allowed is False
        assert decision.message == "namespace does not allow to assume role let-me-be-root"

    def test_key_name_restriction(self):
        """Test that the permitted key name annotation restricts keys."""
        ns = namespace(**{"externalsecrets.kubernetes-client.io/permitted-key-name": "/team-a/"})

        allowed = policy.evaluate(ns, make_request(keys=("/team-a/db",)))
        denied = policy.evaluate(ns, make_request(keys=("/team-a/db", "/team-b/db")))

        assert allowed.allowed is True
        assert denied.allowed is False
        assert "/team-b/db" in denied.message

    def test_enforce_raises(self):
        """Test that enforce raises PolicyDeniedError with the message."""
        with pytest.raises(PolicyDeniedError, match="namespace does not allow to assume role let-me-be-root"):
            policy.enforce(role_namespace("^(foo|bar)"), make_request(role_arn="let-me-be-root"))

    def test_enforce_permits(self):
        """Test that enforce returns quietly when permitted."""
        policy.enforce(role_namespace("^(foo|bar)"), make_request(role_arn="foo"))

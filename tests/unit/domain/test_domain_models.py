"""Tests for domain models, label selectors and exceptions."""

import pytest

from crossplane_broker.domain.exceptions import InstanceInUseError, ResourceNotFoundError
from crossplane_broker.domain.labels import PARENT_ID_LABEL, PLAN_NAME_LABEL, SERVICE_ID_LABEL
from crossplane_broker.domain.models import (
    SLA,
    Instance,
    InstanceParameters,
    Plan,
    decode_secret_data,
    encode_secret_data,
    plan_level,
)
from crossplane_broker.domain.ports import LabelSelector, ResourceKind


@pytest.mark.unit
class TestLabelSelector:
    """Test label selector rendering and matching."""

    def test_renders_set_based_requirement(self):
        """Test that an 'in' requirement renders in the Kubernetes syntax."""
        selector = LabelSelector.label_in(SERVICE_ID_LABEL, ["a", "b"])

        assert selector.to_string() == "service.syn.tools/id in (a,b)"

    def test_renders_equality_and_set_requirements(self):
        """Test that equality requirements come first, joined by commas."""
        selector = LabelSelector(match_labels={"x": "1"}, match_in={"y": ("2", "3")})

        assert selector.to_string() == "x=1,y in (2,3)"

    def test_matches_labels(self):
        """Test matching against label maps."""
        selector = LabelSelector(match_labels={"x": "1"}, match_in={"y": ("2", "3")})

        assert selector.matches({"x": "1", "y": "3", "z": "ignored"})
        assert not selector.matches({"x": "1"})
        assert not selector.matches({"x": "2", "y": "2"})
        assert not selector.matches(None)

    def test_equals(self):
        """Test the single equality selector."""
        selector = LabelSelector.equals(PARENT_ID_LABEL, "m1")

        assert selector.matches({PARENT_ID_LABEL: "m1"})
        assert not selector.matches({PARENT_ID_LABEL: "m2"})


@pytest.mark.unit
class TestPlan:
    """Test plan construction from compositions."""

    def test_from_resource(self):
        """Test that identity, labels and the composite type are read."""
        plan = Plan.from_resource(
            {
                "metadata": {"name": "redis-small", "labels": {PLAN_NAME_LABEL: "small-standard"}},
                "spec": {"compositeTypeRef": {"apiVersion": "syn.tools/v1alpha1", "kind": "CompositeRedisInstance"}},
            }
        )

        assert plan.id == "redis-small"
        assert plan.name == "small-standard"
        assert plan.level == "small"
        assert plan.composite_kind_ref == ResourceKind("syn.tools/v1alpha1", "CompositeRedisInstance")
        assert plan.service_id is None

    def test_plan_level_without_dash(self):
        """Test that a name without a dash is its own level."""
        assert plan_level("default") == "default"
        assert plan_level("large-premium-x") == "large"


@pytest.mark.unit
class TestInstance:
    """Test instance construction from composite resources."""

    def test_from_resource(self):
        """Test that condition, references and parameters are read."""
        instance = Instance.from_resource(
            {
                "metadata": {"name": "i1", "labels": {PLAN_NAME_LABEL: "redis-standard"}},
                "spec": {
                    "compositionRef": {"name": "redis-standard"},
                    "parameters": {"parent_reference": "m1", "size": 3},
                    "resourceRefs": [
                        {"apiVersion": "helm.crossplane.io/v1beta1", "kind": "Release", "name": "r1"},
                        {"apiVersion": "v1", "kind": "Secret", "name": "s1", "namespace": "ns"},
                    ],
                },
                "status": {"conditions": [{"type": "Synced", "status": "True"}, {"type": "Ready", "status": "True", "reason": "Available"}]},
            }
        )

        assert instance.name == "i1"
        assert instance.composition_ref == "redis-standard"
        assert instance.parameters == {"parent_reference": "m1", "size": 3}
        assert instance.is_ready
        assert instance.ready_reason == "Available"
        assert [ref.name for ref in instance.refs_of_kind("Secret")] == ["s1"]
        assert instance.refs_of_kind("Secret")[0].namespace == "ns"

    def test_instance_without_status_is_not_ready(self):
        """Test that a fresh composite reports no readiness."""
        instance = Instance.from_resource({"metadata": {"name": "i1"}})

        assert not instance.is_ready
        assert instance.ready_reason == ""
        assert instance.parameters == {}


@pytest.mark.unit
class TestParametersAndSecrets:
    """Test parameter parsing and secret data helpers."""

    def test_parent_reference_is_read(self):
        """Test that the parent reference is typed and other keys pass through."""
        params = InstanceParameters.model_validate({"parent_reference": "m1", "other": True})

        assert params.parent_reference == "m1"
        assert params.model_extra == {"other": True}

    def test_non_string_parent_reference_is_ignored(self):
        """Test that a non-string parent reference counts as absent."""
        assert InstanceParameters.model_validate({"parent_reference": 42}).parent_reference is None

    def test_secret_data_encoding(self):
        """Test that secret data is base64 encoded and decoded."""
        encoded = encode_secret_data({"password": "s3cr3t"})

        assert encoded == {"password": "czNjcjN0"}
        assert decode_secret_data({"data": encoded}) == {"password": "s3cr3t"}
        assert decode_secret_data({}) is None

    def test_sla_swap(self):
        """Test that the tiers swap into each other."""
        assert SLA.STANDARD.swapped() is SLA.PREMIUM
        assert SLA.PREMIUM.swapped() is SLA.STANDARD


@pytest.mark.unit
class TestExceptions:
    """Test domain exception messages."""

    def test_in_use_lists_children(self):
        """Test that the in-use message names the blocking children."""
        error = InstanceInUseError("m1", ["d1", "d2"])

        assert error.message == 'instance is still in use by "d1, d2"'
        assert error.details["children"] == ["d1", "d2"]

    def test_resource_not_found_message(self):
        """Test that namespaced resources are named with their namespace."""
        assert ResourceNotFoundError("Secret", "s1", "ns").message == "Secret ns/s1 not found"
        assert ResourceNotFoundError("Composition", "p1").error_code == "ResourceNotFoundError"

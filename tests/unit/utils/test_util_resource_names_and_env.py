# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for name validation, environment parsing and manifest rendering."""

from __future__ import annotations

from uuid import uuid4

import pytest

from resource_liveness.enums import EnumErrorCode, EnumNotFoundPolicy
from resource_liveness.errors import ProtocolConfigurationError
from resource_liveness.models import ModelServiceSpec
from resource_liveness.utils.util_env_parsing import (
    parse_env_enum,
    parse_env_float,
    parse_env_str,
)
from resource_liveness.utils.util_resource_name_validation import (
    validate_namespace,
    validate_resource_name,
)
from resource_liveness.utils.util_service_manifest import build_service_manifest


class TestValidateNamespace:
    @pytest.mark.parametrize("namespace", ["default", "kube-system", "a", "ns1"])
    def test_valid(self, namespace: str) -> None:
        validate_namespace(namespace)

    @pytest.mark.parametrize(
        "namespace",
        ["", "Default", "bad_ns", "-lead", "trail-", "dotted.ns", "a" * 64],
    )
    def test_invalid(self, namespace: str) -> None:
        with pytest.raises(ProtocolConfigurationError) as exc_info:
            validate_namespace(namespace)
        assert exc_info.value.error_code is EnumErrorCode.INVALID_CONFIGURATION

    def test_correlation_id_propagates(self) -> None:
        correlation_id = uuid4()
        with pytest.raises(ProtocolConfigurationError) as exc_info:
            validate_namespace("", correlation_id=correlation_id)
        assert exc_info.value.correlation_id == correlation_id


class TestValidateResourceName:
    @pytest.mark.parametrize("name", ["svc", "my-svc.v1", "a" * 253])
    def test_valid(self, name: str) -> None:
        validate_resource_name(name)

    @pytest.mark.parametrize("name", ["", "My-Svc", "svc..v1", "svc_", "a" * 254])
    def test_invalid(self, name: str) -> None:
        with pytest.raises(ProtocolConfigurationError):
            validate_resource_name(name)


class TestEnvParsing:
    def test_str_default_when_unset_or_blank(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("LIVENESS_TEST_STR", raising=False)
        assert parse_env_str("LIVENESS_TEST_STR", "fallback") == "fallback"
        monkeypatch.setenv("LIVENESS_TEST_STR", "   ")
        assert parse_env_str("LIVENESS_TEST_STR", "fallback") == "fallback"

    def test_str_is_stripped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIVENESS_TEST_STR", " value ")
        assert parse_env_str("LIVENESS_TEST_STR", "fallback") == "value"

    def test_float(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIVENESS_TEST_FLOAT", "2.5")
        assert parse_env_float("LIVENESS_TEST_FLOAT", 1.0, minimum=0.0) == 2.5

    def test_float_not_a_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIVENESS_TEST_FLOAT", "soon")
        with pytest.raises(ProtocolConfigurationError, match="LIVENESS_TEST_FLOAT"):
            parse_env_float("LIVENESS_TEST_FLOAT", 1.0)

    def test_float_minimum_is_exclusive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIVENESS_TEST_FLOAT", "0")
        with pytest.raises(ProtocolConfigurationError):
            parse_env_float("LIVENESS_TEST_FLOAT", 1.0, minimum=0.0)

    def test_enum_case_insensitive(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIVENESS_TEST_ENUM", "STOP")
        value = parse_env_enum(
            "LIVENESS_TEST_ENUM", EnumNotFoundPolicy.KEEP_TRYING, EnumNotFoundPolicy
        )
        assert value is EnumNotFoundPolicy.STOP

    def test_enum_unknown_lists_allowed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LIVENESS_TEST_ENUM", "sometimes")
        with pytest.raises(ProtocolConfigurationError, match="keep_trying, stop"):
            parse_env_enum(
                "LIVENESS_TEST_ENUM", EnumNotFoundPolicy.KEEP_TRYING, EnumNotFoundPolicy
            )


class TestBuildServiceManifest:
    def test_cluster_ip_manifest(self) -> None:
        spec = ModelServiceSpec(
            name="web",
            namespace="agents",
            labels={"owner": "agent"},
            annotations={"note": "x"},
            ports={8080: 80, 443: 8443},
            selectors={"app": "web"},
        )

        manifest = build_service_manifest(spec, now=1704164645.0)

        assert manifest["kind"] == "Service"
        assert manifest["metadata"]["name"] == "web"
        assert manifest["metadata"]["namespace"] == "agents"
        assert manifest["metadata"]["labels"] == {"owner": "agent"}
        assert manifest["metadata"]["annotations"] == {
            "note": "x",
            "kt-last-heart-beat": "1704164645",
        }
        assert manifest["spec"]["type"] == "ClusterIP"
        assert manifest["spec"]["selector"] == {"app": "web"}
        assert [p["port"] for p in manifest["spec"]["ports"]] == [443, 8080]
        assert manifest["spec"]["ports"][0] == {
            "name": "tcp-443",
            "port": 443,
            "targetPort": 8443,
            "protocol": "TCP",
        }

    def test_external_uses_load_balancer(self) -> None:
        spec = ModelServiceSpec(name="web", namespace="agents", external=True)
        manifest = build_service_manifest(spec)
        assert manifest["spec"]["type"] == "LoadBalancer"

    def test_spec_is_not_mutated(self) -> None:
        spec = ModelServiceSpec(name="web", namespace="agents", annotations={"a": "b"})
        build_service_manifest(spec)
        assert spec.annotations == {"a": "b"}

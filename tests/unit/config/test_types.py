from __future__ import annotations

import pytest
from pydantic import ValidationError

from infra_compose.config.environments import get_environment_config
from infra_compose.config.types import (
    CompositionDefaults,
    FunctionConfig,
    SqsFunctionConfig,
    parse_config,
)
from infra_compose.core.errors import ConfigurationError
from infra_compose.core.iam.policy_document import Effect, PolicyStatement
from tests.fixtures.composition_builders import build_function_config, build_vpc_config

pytestmark = [pytest.mark.unit]


def test_camel_case_and_snake_case_keys_are_both_accepted() -> None:
    """
    Given: 같은 설정을 camelCase / snake_case 로 표현
    When: FunctionConfig 파싱
    Then: 동일한 모델 생성
    """
    camel = parse_config(FunctionConfig, build_function_config(logRetention=30, usesCodeDeploy=True))
    snake = parse_config(FunctionConfig, build_function_config(log_retention=30, uses_code_deploy=True))

    assert camel == snake
    assert camel.log_retention == 30
    assert camel.uses_code_deploy is True
    assert camel.publish_versioning is True


def test_nested_configs_are_parsed() -> None:
    parsed = parse_config(
        SqsFunctionConfig,
        build_function_config(
            vpcConfig=build_vpc_config(),
            configFromPreexistingSqsQueue={"name": "jobs"},
            executionPolicyStatements=[{"effect": "deny", "actions": ["s3:DeleteObject"], "resources": ["*"]}],
        ),
    )

    assert parsed.vpc_config is not None
    assert parsed.vpc_config.security_group_ids == ["sg-123"]
    assert parsed.config_from_preexisting_sqs_queue is not None
    assert parsed.config_from_preexisting_sqs_queue.name == "jobs"
    statement = parsed.execution_policy_statements[0]
    assert isinstance(statement, PolicyStatement)
    assert statement.effect is Effect.DENY


def test_parse_config_returns_instances_unchanged() -> None:
    parsed = parse_config(FunctionConfig, build_function_config())

    assert parse_config(FunctionConfig, parsed) is parsed


def test_plain_function_config_widens_to_sqs_config() -> None:
    base = parse_config(FunctionConfig, build_function_config(timeout=30))
    sqs = parse_config(SqsFunctionConfig, base)

    assert sqs.timeout == 30
    assert sqs.batch_size is None
    assert sqs.config_from_preexisting_sqs_queue is None


@pytest.mark.parametrize(
    "overrides, location",
    [
        ({"name": "bad name"}, "name"),
        ({"name": "x" * 51}, "name"),
        ({"timeout": 901}, "timeout"),
        ({"logRetention": 2}, "logRetention"),
        ({"vpcConfig": {"subnetIds": []}}, "vpcConfig.subnetIds"),
        ({"codeSource": {"bucket": "acme-code", "key": "a.zip"}}, "codeSource.sha256"),
    ],
)
def test_field_errors_are_reported_with_location(overrides, location: str) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        parse_config(FunctionConfig, build_function_config(**overrides))

    message = str(excinfo.value)
    assert message.startswith("Invalid FunctionConfig: ")
    assert f"{location}: " in message


def test_missing_required_fields() -> None:
    with pytest.raises(ConfigurationError, match="runtime"):
        parse_config(FunctionConfig, {"name": "X", "handler": "index.handler"})


def test_unknown_statement_effect_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        parse_config(
            FunctionConfig,
            build_function_config(executionPolicyStatements=[{"effect": "Maybe", "actions": ["s3:*"], "resources": ["*"]}]),
        )


def test_configs_are_immutable() -> None:
    parsed = parse_config(FunctionConfig, build_function_config())

    with pytest.raises(ValidationError):
        parsed.name = "Other"  # type: ignore[misc]


@pytest.mark.parametrize("environment", ["dev", "staging", "prod"])
def test_environment_configs_define_region_and_tags(environment: str) -> None:
    config = get_environment_config(environment)

    assert config["region"]
    assert config["tags"]["Environment"] == environment
    assert config["log_retention_days"] in (14, 30, 90)


def test_unknown_environment_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown environment: qa"):
        get_environment_config("qa")


def test_defaults_overlay_environment_values() -> None:
    defaults = CompositionDefaults.from_environment(get_environment_config("prod"))

    assert defaults.timeout == 30
    assert defaults.log_retention_days == 90
    assert defaults.alias_name == "DEPLOYED"
    assert defaults.max_receive_count == 3


def test_defaults_without_overrides() -> None:
    defaults = CompositionDefaults.from_environment({"region": "us-east-1", "log_group_prefix": "/acme/"})

    assert defaults.timeout == 5
    assert defaults.log_retention_days == 14
    assert defaults.log_group_prefix == "/acme"


def test_longest_function_name_keeps_execution_role_name_within_iam_limit() -> None:
    parsed = parse_config(FunctionConfig, build_function_config("x" * 50))

    assert len(f"{parsed.name}-ExecutionRole") <= 64

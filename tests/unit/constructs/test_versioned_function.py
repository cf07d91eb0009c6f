from __future__ import annotations

import pytest

from infra_compose.config.types import CompositionDefaults
from infra_compose.constructs.versioned_function import VersionedFunctionComposer
from infra_compose.core import kinds
from infra_compose.core.artifacts import CodeArtifact, LanguageFamily
from infra_compose.core.declarations import AttributeReference, DeclarationSink
from infra_compose.core.errors import ArtifactError, ConfigurationError
from infra_compose.core.iam import utils as iam_utils
from tests.fixtures.composition_builders import build_function_config, build_vpc_config, statement_actions

pytestmark = [pytest.mark.unit, pytest.mark.infrastructure]


class _FailingArtifactProvider:
    def resolve(self, family: LanguageFamily, handler: str) -> CodeArtifact:
        raise ArtifactError(f"no artifact for {family.value}:{handler}")


def test_emits_full_graph_in_dependency_order(sink: DeclarationSink) -> None:
    """
    Given: 최소 함수 설정 (name, runtime, handler)
    When: 버전 함수 합성
    Then: role -> policy -> attachment -> function -> version -> log group -> alias 순서로 선언
    """
    VersionedFunctionComposer(sink).compose(build_function_config("X"))

    assert [(d.kind, d.logical_name) for d in sink] == [
        (kinds.IAM_ROLE, "X-execution-role"),
        (kinds.IAM_MANAGED_POLICY, "X-execution-policy"),
        (kinds.IAM_ROLE_POLICY_ATTACHMENT, "X-execution-role-policy-attachment"),
        (kinds.LAMBDA_FUNCTION, "X-function"),
        (kinds.LAMBDA_VERSION, "X-function-version"),
        (kinds.LOG_GROUP, "X-log-group"),
        (kinds.LAMBDA_ALIAS, "X-alias"),
    ]


def test_defaults_for_timeout_and_log_retention(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(build_function_config("X"))

    assert function.function.attributes["Timeout"] == 5
    assert function.function.attributes["FunctionName"] == "X-Function"
    assert function.log_group.attributes["RetentionInDays"] == 14
    assert function.log_group.attributes["LogGroupName"] == "/function-logs/X-Function"


def test_overrides_and_pass_through_attributes(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(
        build_function_config(
            "X",
            timeout=60,
            logRetention=30,
            environmentVars={"QUEUE": "jobs", "MODE": "strict"},
            description="Consumes jobs",
            tags={"Team": "core"},
        )
    )
    attributes = function.function.attributes

    assert attributes["Timeout"] == 60
    assert dict(attributes["Environment"]["Variables"]) == {"QUEUE": "jobs", "MODE": "strict"}
    assert attributes["Description"] == "Consumes jobs"
    assert function.log_group.attributes["RetentionInDays"] == 30
    assert [dict(tag) for tag in attributes["Tags"]] == [{"Key": "Team", "Value": "core"}]


def test_function_runs_as_execution_role_after_attachment(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(build_function_config("X"))

    assert function.function.attributes["Role"] == AttributeReference("X-execution-role", "Arn")
    assert function.function.depends_on == ("X-execution-role-policy-attachment",)
    assert function.log_group.depends_on == ("X-function",)


def test_alias_references_version_attribute_not_a_literal(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(build_function_config("X"))

    version_ref = function.alias.attributes["FunctionVersion"]
    assert version_ref == AttributeReference("X-function-version", "Version")
    assert function.alias.attributes["Name"] == "DEPLOYED"
    assert function.alias.attributes["FunctionName"] == function.function.ref()
    assert function.alias.lifecycle.ignore_changes == ()
    assert function.alias_arn == AttributeReference("X-alias", "Ref")


def test_code_deploy_marks_alias_to_ignore_version_drift(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(build_function_config("X", usesCodeDeploy=True))

    assert function.alias.lifecycle.ignore_changes == ("FunctionVersion",)
    assert isinstance(function.alias.attributes["FunctionVersion"], AttributeReference)


def test_vpc_config_adds_network_interface_statement(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(build_function_config("X", vpcConfig=build_vpc_config()))

    actions = statement_actions(function.role_binding.policy.attributes["PolicyDocument"])
    assert actions == [list(iam_utils.LOG_WRITE_ACTIONS), list(iam_utils.NETWORK_INTERFACE_ACTIONS)]
    assert len(actions[-1]) == 5
    vpc = function.function.attributes["VpcConfig"]
    assert list(vpc["SubnetIds"]) == ["subnet-aaa", "subnet-bbb"]


def test_caller_statements_are_merged_after_baseline(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(
        build_function_config(
            "X",
            executionPolicyStatements=[
                {"effect": "Allow", "actions": ["dynamodb:GetItem"], "resources": ["arn:aws:dynamodb:*:*:table/jobs"]},
                {"effect": "Allow", "actions": ["s3:GetObject"], "resources": ["arn:aws:s3:::assets/*"]},
            ],
        )
    )
    actions = statement_actions(function.role_binding.policy.attributes["PolicyDocument"])
    assert actions == [list(iam_utils.LOG_WRITE_ACTIONS), ["dynamodb:GetItem"], ["s3:GetObject"]]


def test_placeholder_code_is_inline_and_ignored_after_first_deploy(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(build_function_config("X"))

    assert function.plan.artifact.is_placeholder
    assert "exports.handler" in function.function.attributes["Code"]["ZipFile"]
    assert function.function.lifecycle.ignore_changes == ("Code",)
    assert function.version.attributes["Description"] == f"sha256:{function.plan.artifact.sha256}"
    assert "CodeSha256" not in function.version.attributes


def test_supplied_code_source_is_used_and_versioned_by_hash(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(
        build_function_config(
            "X",
            codeSource={"bucket": "acme-code", "key": "worker/v2.zip", "sha256": "q1w2e3="},
            codeBucket="acme-code",
        )
    )

    assert dict(function.function.attributes["Code"]) == {"S3Bucket": "acme-code", "S3Key": "worker/v2.zip"}
    assert function.function.lifecycle.ignore_changes == ()
    assert function.version.attributes["CodeSha256"] == "q1w2e3="
    assert function.code_bucket is not None
    assert function.code_bucket.attributes["PublicAccessBlockConfiguration"]["BlockPublicPolicy"] is True
    assert "X-code-bucket" in function.function.depends_on


def test_unpublished_function_alias_targets_latest(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(build_function_config("X", publishVersioning=False))

    assert function.version is None
    assert function.alias.attributes["FunctionVersion"] == "$LATEST"
    assert not sink.of_kind(kinds.LAMBDA_VERSION)


def test_artifact_failure_leaves_no_declarations(sink: DeclarationSink) -> None:
    composer = VersionedFunctionComposer(sink, artifact_provider=_FailingArtifactProvider())

    with pytest.raises(ArtifactError, match="nodejs:index.handler"):
        composer.compose(build_function_config("X"))
    assert len(sink) == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"runtime": "ruby3.2"},
        {"handler": "handler"},
        {"runtime": "python3.12", "handler": "my-module.handler"},
        {"timeout": 0},
        {"logRetention": 13},
        {"unexpected": True},
    ],
)
def test_invalid_function_config_is_rejected_before_any_declaration(sink: DeclarationSink, overrides) -> None:
    with pytest.raises(ConfigurationError):
        VersionedFunctionComposer(sink).compose(build_function_config("X", **overrides))
    assert len(sink) == 0


def test_composition_is_deterministic() -> None:
    first, second = DeclarationSink(scope="a"), DeclarationSink(scope="a")
    config = build_function_config("X", vpcConfig=build_vpc_config(), usesCodeDeploy=True)

    VersionedFunctionComposer(first).compose(config)
    VersionedFunctionComposer(second).compose(config)

    assert first.to_json() == second.to_json()


def test_composing_same_name_twice_in_one_sink_is_rejected(sink: DeclarationSink) -> None:
    composer = VersionedFunctionComposer(sink)
    composer.compose(build_function_config("X"))
    before = len(sink)

    with pytest.raises(ConfigurationError, match="already declared"):
        composer.compose(build_function_config("X"))
    assert len(sink) == before


def test_environment_defaults_apply_when_unset(sink: DeclarationSink) -> None:
    defaults = CompositionDefaults.from_environment({"function_timeout": 30, "log_retention_days": 90})
    function = VersionedFunctionComposer(sink, defaults=defaults).compose(build_function_config("X"))

    assert function.function.attributes["Timeout"] == 30
    assert function.log_group.attributes["RetentionInDays"] == 90


def test_string_valued_statement_fields_reach_policy_intact(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(
        build_function_config(
            "X",
            executionPolicyStatements=[
                {
                    "actions": "s3:GetObject",
                    "resources": "arn:aws:s3:::assets/*",
                    "condition": {"Bool": {"aws:SecureTransport": "true"}},
                }
            ],
        )
    )
    statement = function.role_binding.policy.attributes["PolicyDocument"]["Statement"][1]

    assert list(statement["Action"]) == ["s3:GetObject"]
    assert list(statement["Resource"]) == ["arn:aws:s3:::assets/*"]
    assert dict(statement["Condition"]["Bool"]) == {"aws:SecureTransport": "true"}


def test_statement_with_unknown_key_is_rejected_before_any_declaration(sink: DeclarationSink) -> None:
    with pytest.raises(ConfigurationError, match="Unsupported statement keys"):
        VersionedFunctionComposer(sink).compose(
            build_function_config(
                "X",
                executionPolicyStatements=[{"actions": ["s3:GetObject"], "resources": ["*"], "notActions": ["s3:*"]}],
            )
        )
    assert len(sink) == 0


def test_non_index_handler_without_code_source_is_rejected(sink: DeclarationSink) -> None:
    with pytest.raises(ConfigurationError, match="needs supplied code"):
        VersionedFunctionComposer(sink).compose(build_function_config("X", handler="src/app.handler"))
    assert len(sink) == 0


def test_non_index_handler_with_code_source_is_accepted(sink: DeclarationSink) -> None:
    function = VersionedFunctionComposer(sink).compose(
        build_function_config(
            "X",
            handler="src/app.handler",
            codeSource={"bucket": "acme-code", "key": "worker.zip", "sha256": "abc="},
        )
    )

    assert function.function.attributes["Handler"] == "src/app.handler"

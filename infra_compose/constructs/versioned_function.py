"""Versioned function with a stable alias, execution role and log group."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from infra_compose.config.types import CompositionDefaults, FunctionConfig, parse_config
from infra_compose.config.validation import resolve_timeout, validate_function_config
from infra_compose.core import kinds
from infra_compose.core.artifacts import ArtifactProvider, CodeArtifact, LanguageFamily, PlaceholderArtifactProvider
from infra_compose.core.declarations import (
    AttributeReference,
    DeclarationSink,
    Lifecycle,
    ResourceDeclaration,
    tag_list,
)
from infra_compose.core.errors import ArtifactError
from infra_compose.core.iam import PolicyDocumentBuilder, RoleBinder, RoleBinding
from infra_compose.logging_utils import get_logger

logger = get_logger(__name__)

UNPUBLISHED_VERSION = "$LATEST"


@dataclass(frozen=True)
class FunctionPlan:
    """Validated inputs for one function; produced before anything is declared."""

    config: FunctionConfig
    family: LanguageFamily
    artifact: CodeArtifact
    timeout: int
    log_retention_days: int

    @property
    def function_name(self) -> str:
        return f"{self.config.name}-Function"


@dataclass(frozen=True)
class VersionedFunction:
    """Handles to a composed function, for further composition by callers."""

    plan: FunctionPlan
    role_binding: RoleBinding
    function: ResourceDeclaration
    version: Optional[ResourceDeclaration]
    log_group: ResourceDeclaration
    alias: ResourceDeclaration
    code_bucket: Optional[ResourceDeclaration] = None

    @property
    def name(self) -> str:
        return self.plan.config.name

    @property
    def role(self) -> ResourceDeclaration:
        return self.role_binding.role

    @property
    def alias_arn(self) -> AttributeReference:
        return self.alias.ref()

    @property
    def role_arn(self) -> AttributeReference:
        return self.role_binding.role_arn

    @property
    def function_name(self) -> AttributeReference:
        return self.function.ref()

    @property
    def function_arn(self) -> AttributeReference:
        return self.function.attr("Arn")

    @property
    def declarations(self) -> Tuple[ResourceDeclaration, ...]:
        ordered = [
            self.code_bucket,
            self.role_binding.role,
            self.role_binding.policy,
            self.role_binding.attachment,
            self.function,
            self.version,
            self.log_group,
            self.alias,
        ]
        return tuple(declaration for declaration in ordered if declaration is not None)


class VersionedFunctionComposer:
    """Compose a function whose alias stays stable while numbered versions change.

    Every content change of the code artifact yields a new published version;
    the alias targets that version through a reference to the version's
    ``Version`` attribute. With ``uses_code_deploy`` the alias is marked to
    ignore drift on ``FunctionVersion`` so a blue/green controller can move it.
    """

    def __init__(
        self,
        sink: DeclarationSink,
        artifact_provider: Optional[ArtifactProvider] = None,
        defaults: Optional[CompositionDefaults] = None,
    ) -> None:
        self._sink = sink
        self._artifacts = artifact_provider or PlaceholderArtifactProvider()
        self._defaults = defaults or CompositionDefaults()
        self._roles = RoleBinder(sink)

    @property
    def defaults(self) -> CompositionDefaults:
        return self._defaults

    def plan(self, config: Union[FunctionConfig, Mapping[str, Any]]) -> FunctionPlan:
        """Validate ``config`` and resolve its artifact without declaring anything."""
        parsed = parse_config(FunctionConfig, config)
        family = validate_function_config(parsed)
        artifact = self._resolve_artifact(parsed, family)
        return FunctionPlan(
            config=parsed,
            family=family,
            artifact=artifact,
            timeout=resolve_timeout(parsed, self._defaults),
            log_retention_days=(
                parsed.log_retention if parsed.log_retention is not None else self._defaults.log_retention_days
            ),
        )

    def compose(self, config: Union[FunctionConfig, Mapping[str, Any]]) -> VersionedFunction:
        return self.compose_plan(self.plan(config))

    def compose_plan(self, plan: FunctionPlan) -> VersionedFunction:
        config = plan.config
        with self._sink.transaction():
            code_bucket = self._declare_code_bucket(config) if config.code_bucket else None

            document = PolicyDocumentBuilder.for_function().build(
                config.execution_policy_statements, vpc_enabled=config.vpc_config is not None
            )
            binding = self._roles.bind(config.name, policy=document, tags=config.tags)

            function = self._declare_function(plan, binding, code_bucket)
            version = self._declare_version(plan, function) if config.publish_versioning else None
            log_group = self._sink.append(
                ResourceDeclaration(
                    kind=kinds.LOG_GROUP,
                    logical_name=f"{config.name}-log-group",
                    attributes=self._with_tags(
                        {
                            "LogGroupName": f"{self._defaults.log_group_prefix}/{plan.function_name}",
                            "RetentionInDays": plan.log_retention_days,
                        },
                        config.tags,
                    ),
                    depends_on=(function.logical_name,),
                )
            )
            alias = self._declare_alias(config, function, version)

        logger.info(
            "Composed versioned function",
            extra={
                "function": plan.function_name,
                "runtime": config.runtime,
                "placeholder_code": plan.artifact.is_placeholder,
                "uses_code_deploy": config.uses_code_deploy,
            },
        )
        return VersionedFunction(
            plan=plan,
            role_binding=binding,
            function=function,
            version=version,
            log_group=log_group,
            alias=alias,
            code_bucket=code_bucket,
        )

    def _resolve_artifact(self, config: FunctionConfig, family: LanguageFamily) -> CodeArtifact:
        if config.code_source is not None:
            source = config.code_source
            return CodeArtifact.from_s3(source.bucket, source.key, source.sha256)
        try:
            return self._artifacts.resolve(family, config.handler)
        except ArtifactError:
            logger.error("Code artifact could not be resolved", extra={"function": config.name})
            raise

    def _declare_code_bucket(self, config: FunctionConfig) -> ResourceDeclaration:
        return self._sink.append(
            ResourceDeclaration(
                kind=kinds.S3_BUCKET,
                logical_name=f"{config.name}-code-bucket",
                attributes=self._with_tags(
                    {
                        "BucketName": config.code_bucket,
                        "PublicAccessBlockConfiguration": {
                            "BlockPublicAcls": True,
                            "BlockPublicPolicy": True,
                            "IgnorePublicAcls": True,
                            "RestrictPublicBuckets": True,
                        },
                    },
                    config.tags,
                ),
            )
        )

    def _declare_function(
        self, plan: FunctionPlan, binding: RoleBinding, code_bucket: Optional[ResourceDeclaration]
    ) -> ResourceDeclaration:
        config = plan.config
        artifact = plan.artifact
        if artifact.is_placeholder:
            code: Dict[str, Any] = {"ZipFile": artifact.inline_source}
        else:
            bucket, key = artifact.s3_location
            code = {"S3Bucket": bucket, "S3Key": key}

        attributes: Dict[str, Any] = {
            "FunctionName": plan.function_name,
            "Handler": config.handler,
            "Runtime": config.runtime,
            "Timeout": plan.timeout,
            "Role": binding.role_arn,
            "Code": code,
        }
        if config.description:
            attributes["Description"] = config.description
        if config.environment_vars:
            attributes["Environment"] = {"Variables": dict(config.environment_vars)}
        if config.vpc_config is not None:
            attributes["VpcConfig"] = config.vpc_config.to_attributes()

        depends_on = [binding.attachment.logical_name]
        if code_bucket is not None:
            depends_on.append(code_bucket.logical_name)

        # Placeholder code is replaced out of band by the deployment pipeline.
        lifecycle = Lifecycle(ignore_changes=("Code",)) if artifact.is_placeholder else Lifecycle()
        return self._sink.append(
            ResourceDeclaration(
                kind=kinds.LAMBDA_FUNCTION,
                logical_name=f"{config.name}-function",
                attributes=self._with_tags(attributes, config.tags),
                depends_on=tuple(depends_on),
                lifecycle=lifecycle,
            )
        )

    def _declare_version(self, plan: FunctionPlan, function: ResourceDeclaration) -> ResourceDeclaration:
        attributes: Dict[str, Any] = {
            "FunctionName": function.ref(),
            "Description": f"sha256:{plan.artifact.sha256}",
        }
        if not plan.artifact.is_placeholder:
            attributes["CodeSha256"] = plan.artifact.sha256
        return self._sink.append(
            ResourceDeclaration(
                kind=kinds.LAMBDA_VERSION,
                logical_name=f"{plan.config.name}-function-version",
                attributes=attributes,
                depends_on=(function.logical_name,),
            )
        )

    def _declare_alias(
        self, config: FunctionConfig, function: ResourceDeclaration, version: Optional[ResourceDeclaration]
    ) -> ResourceDeclaration:
        target: Union[str, AttributeReference] = version.attr("Version") if version is not None else UNPUBLISHED_VERSION
        depends_on = [function.logical_name]
        if version is not None:
            depends_on.append(version.logical_name)
        lifecycle = Lifecycle(ignore_changes=("FunctionVersion",)) if config.uses_code_deploy else Lifecycle()
        return self._sink.append(
            ResourceDeclaration(
                kind=kinds.LAMBDA_ALIAS,
                logical_name=f"{config.name}-alias",
                attributes={
                    "FunctionName": function.ref(),
                    "FunctionVersion": target,
                    "Name": self._defaults.alias_name,
                },
                depends_on=tuple(depends_on),
                lifecycle=lifecycle,
            )
        )

    @staticmethod
    def _with_tags(attributes: Dict[str, Any], tags: Mapping[str, str]) -> Dict[str, Any]:
        if tags:
            attributes["Tags"] = tag_list(tags)
        return attributes

"""Realize a declaration sink as CloudFormation resources inside a CDK stack.

Managed declarations become ``CfnResource`` constructs with fixed logical ids,
references become ``Ref`` / ``Fn::GetAtt`` tokens and ``depends_on`` becomes
``DependsOn``. Role/policy attachments have no CloudFormation resource of
their own and are folded into the managed policy's ``Roles`` list.
"""

from __future__ import annotations

import re
from typing import Any, Callable, Dict, List, Mapping

from aws_cdk import CfnOutput, CfnParameter, CfnResource, Fn, Stack
from constructs import Construct

from infra_compose.core import kinds
from infra_compose.core.declarations import AttributeReference, DeclarationMode, DeclarationSink, ResourceDeclaration
from infra_compose.core.errors import DuplicateDeclarationError, UnresolvedReferenceError
from infra_compose.logging_utils import get_logger

logger = get_logger(__name__)

_WORD = re.compile(r"[A-Za-z0-9]+")


def logical_id(logical_name: str) -> str:
    """PascalCase CloudFormation logical id for a declaration name."""
    return "".join(part[:1].upper() + part[1:] for part in _WORD.findall(logical_name))


def _queue_lookup(declaration: ResourceDeclaration, attribute: str) -> Any:
    name = str(declaration.attributes["QueueName"])
    if attribute == "Arn":
        return Fn.sub("arn:${AWS::Partition}:sqs:${AWS::Region}:${AWS::AccountId}:" + name)
    if attribute in ("Ref", "QueueUrl"):
        return Fn.sub("https://sqs.${AWS::Region}.${AWS::URLSuffix}/${AWS::AccountId}/" + name)
    if attribute == "QueueName":
        return name
    raise UnresolvedReferenceError(f"{declaration.logical_name}.{attribute}")


class CdkStackRenderer:
    """Translate every declaration of a sink into constructs under ``scope``.

    ``scope`` is a stack or any construct inside one; logical ids are fixed on
    the enclosing stack either way.
    """

    def __init__(self, scope: Construct) -> None:
        self._scope = scope
        self._stack = Stack.of(scope)
        self._resources: Dict[str, CfnResource] = {}
        self._lookups: Dict[str, Callable[[str], Any]] = {}
        self._policy_roles: Dict[str, List[Any]] = {}
        self._logical_ids: Dict[str, str] = {}

    @property
    def resources(self) -> Mapping[str, CfnResource]:
        return dict(self._resources)

    def render(self, sink: DeclarationSink) -> Mapping[str, CfnResource]:
        for declaration in sink:
            if declaration.mode is DeclarationMode.DATA:
                self._render_lookup(declaration)
            elif declaration.kind == kinds.IAM_ROLE_POLICY_ATTACHMENT:
                self._fold_attachment(declaration)
            else:
                self._render_resource(declaration)
        logger.info(
            "Rendered declarations into stack",
            extra={"stack": self._stack.stack_name, "resources": len(self._resources), "scope": sink.scope},
        )
        return self.resources

    def resolve(self, value: Any) -> Any:
        """Replace nested references with CloudFormation intrinsic tokens."""
        if isinstance(value, AttributeReference):
            return self._resolve_reference(value)
        if isinstance(value, Mapping):
            return {key: self.resolve(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.resolve(item) for item in value]
        return value

    def add_output(self, output_id: str, reference: AttributeReference, description: str = "") -> CfnOutput:
        output = CfnOutput(self._scope, output_id, value=self.resolve(reference), description=description or None)
        output.override_logical_id(output_id)
        return output

    def _claim_logical_id(self, logical_name: str) -> str:
        candidate = logical_id(logical_name)
        owner = self._logical_ids.get(candidate)
        if owner is not None and owner != logical_name:
            raise DuplicateDeclarationError(logical_name)
        self._logical_ids[candidate] = logical_name
        return candidate

    def _render_resource(self, declaration: ResourceDeclaration) -> None:
        resource_id = self._claim_logical_id(declaration.logical_name)
        resource = CfnResource(
            self._scope,
            resource_id,
            type=declaration.kind,
            properties=self.resolve(declaration.attributes),
        )
        resource.override_logical_id(resource_id)
        for dependency in declaration.depends_on:
            target = self._resources.get(dependency)
            if target is not None:
                resource.add_dependency(target)
            elif dependency not in self._lookups:
                raise UnresolvedReferenceError(dependency, referenced_by=declaration.logical_name)
        if declaration.lifecycle.ignore_changes:
            resource.add_metadata("IgnoreChanges", list(declaration.lifecycle.ignore_changes))
        self._resources[declaration.logical_name] = resource

    def _fold_attachment(self, declaration: ResourceDeclaration) -> None:
        role_ref = declaration.attributes["Role"]
        policy_ref = declaration.attributes["PolicyArn"]
        policy = self._resources.get(policy_ref.logical_name)
        role = self._resources.get(role_ref.logical_name)
        if policy is None or role is None:
            missing = policy_ref.logical_name if policy is None else role_ref.logical_name
            raise UnresolvedReferenceError(missing, referenced_by=declaration.logical_name)
        roles = self._policy_roles.setdefault(policy_ref.logical_name, [])
        roles.append(self._resolve_reference(role_ref))
        policy.add_property_override("Roles", list(roles))
        policy.add_dependency(role)
        # Dependents of the attachment wait for the policy that now carries it.
        self._resources[declaration.logical_name] = policy

    def _render_lookup(self, declaration: ResourceDeclaration) -> None:
        if declaration.kind == kinds.SQS_QUEUE:
            self._lookups[declaration.logical_name] = lambda attribute: _queue_lookup(declaration, attribute)
            return
        if declaration.kind == kinds.ROUTE53_HOSTED_ZONE:
            zone_name = str(declaration.attributes["Name"])
            parameter_id = f"{self._claim_logical_id(declaration.logical_name)}Id"
            parameter = CfnParameter(
                self._scope,
                parameter_id,
                type="AWS::Route53::HostedZone::Id",
                description=f"Hosted zone id of {zone_name}",
            )
            parameter.override_logical_id(parameter_id)

            def _zone(attribute: str) -> Any:
                if attribute in ("Ref", "Id"):
                    return parameter.value_as_string
                if attribute == "Name":
                    return zone_name
                raise UnresolvedReferenceError(f"{declaration.logical_name}.{attribute}")

            self._lookups[declaration.logical_name] = _zone
            return
        raise UnresolvedReferenceError(declaration.logical_name, referenced_by=f"lookup of kind {declaration.kind}")

    def _resolve_reference(self, reference: AttributeReference) -> Any:
        lookup = self._lookups.get(reference.logical_name)
        if lookup is not None:
            return lookup(reference.attribute)
        resource = self._resources.get(reference.logical_name)
        if resource is None:
            raise UnresolvedReferenceError(reference.logical_name)
        if reference.is_primary:
            return resource.ref
        return resource.get_att(reference.attribute)

"""Bind execution identities to named permission policies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from infra_compose.core import kinds
from infra_compose.core.declarations import AttributeReference, DeclarationSink, ResourceDeclaration, tag_list
from infra_compose.core.iam import utils as iam_utils
from infra_compose.core.iam.policy_document import PolicyDocument, TrustPrincipal, assume_role_document


@dataclass(frozen=True)
class PolicyAttachment:
    policy: ResourceDeclaration
    attachment: ResourceDeclaration

    @property
    def policy_arn(self) -> AttributeReference:
        return self.policy.ref()


@dataclass(frozen=True)
class RoleBinding:
    role: ResourceDeclaration
    policy: ResourceDeclaration
    attachment: ResourceDeclaration

    @property
    def role_arn(self) -> AttributeReference:
        return self.role.attr("Arn")

    @property
    def role_name(self) -> AttributeReference:
        return self.role.ref()


class RoleBinder:
    """Create execution roles and attach named policies to them.

    Logical names derive from the owner name only, so binding the same owner
    twice into fresh sinks yields identical declarations.
    """

    def __init__(self, sink: DeclarationSink) -> None:
        self._sink = sink

    def bind(
        self,
        owner_name: str,
        trusted_principals: Optional[Sequence[str]] = None,
        *,
        policy: PolicyDocument,
        tags: Optional[Mapping[str, str]] = None,
    ) -> RoleBinding:
        principals = TrustPrincipal(identifiers=tuple(trusted_principals or iam_utils.FUNCTION_SERVICE_PRINCIPALS))
        attributes = {
            "RoleName": f"{owner_name}-ExecutionRole",
            "AssumeRolePolicyDocument": assume_role_document([principals]).to_dict(),
        }
        if tags:
            attributes["Tags"] = tag_list(tags)
        role = self._sink.append(
            ResourceDeclaration(kind=kinds.IAM_ROLE, logical_name=f"{owner_name}-execution-role", attributes=attributes)
        )
        policy_declaration = self._sink.append(
            ResourceDeclaration(
                kind=kinds.IAM_MANAGED_POLICY,
                logical_name=f"{owner_name}-execution-policy",
                attributes={
                    "ManagedPolicyName": f"{owner_name}-ExecutionRolePolicy",
                    "PolicyDocument": policy.to_dict(),
                },
            )
        )
        attachment = self._append_attachment(
            f"{owner_name}-execution-role-policy-attachment", role, policy_declaration
        )
        return RoleBinding(role=role, policy=policy_declaration, attachment=attachment)

    def attach(
        self,
        role: ResourceDeclaration,
        *,
        logical_prefix: str,
        policy_name: str,
        policy: PolicyDocument,
    ) -> PolicyAttachment:
        """Attach one more named policy to an existing role without replacing its permissions."""
        policy_declaration = self._sink.append(
            ResourceDeclaration(
                kind=kinds.IAM_MANAGED_POLICY,
                logical_name=f"{logical_prefix}-policy",
                attributes={"ManagedPolicyName": policy_name, "PolicyDocument": policy.to_dict()},
                depends_on=(role.logical_name,),
            )
        )
        attachment = self._append_attachment(f"{logical_prefix}-policy-attachment", role, policy_declaration)
        return PolicyAttachment(policy=policy_declaration, attachment=attachment)

    def _append_attachment(
        self, logical_name: str, role: ResourceDeclaration, policy: ResourceDeclaration
    ) -> ResourceDeclaration:
        return self._sink.append(
            ResourceDeclaration(
                kind=kinds.IAM_ROLE_POLICY_ATTACHMENT,
                logical_name=logical_name,
                attributes={"Role": role.ref(), "PolicyArn": policy.ref()},
                depends_on=(role.logical_name, policy.logical_name),
            )
        )

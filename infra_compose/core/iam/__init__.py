"""IAM builders for execution identities and their permission documents."""

from . import utils  # noqa: F401
from .policy_document import PolicyDocument, PolicyDocumentBuilder, PolicyStatement, TrustPrincipal
from .role_binder import PolicyAttachment, RoleBinder, RoleBinding

__all__ = [
    "utils",
    "PolicyDocument",
    "PolicyDocumentBuilder",
    "PolicyStatement",
    "TrustPrincipal",
    "PolicyAttachment",
    "RoleBinder",
    "RoleBinding",
]

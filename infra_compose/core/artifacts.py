"""Code artifact references and placeholder synthesis.

When a caller supplies no code, the composer asks an :class:`ArtifactProvider`
for one. The default :class:`PlaceholderArtifactProvider` synthesizes a tiny
handler that only logs its event, so a scaffold deployment validates before
real code is shipped by the deployment pipeline.
"""

from __future__ import annotations

import base64
import hashlib
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, Tuple

from infra_compose.core.errors import ArtifactError, ConfigurationError


class LanguageFamily(str, Enum):
    NODEJS = "nodejs"
    PYTHON = "python"


SUPPORTED_RUNTIMES = {
    LanguageFamily.NODEJS: ("nodejs12.x", "nodejs14.x", "nodejs16.x", "nodejs18.x", "nodejs20.x", "nodejs22.x"),
    LanguageFamily.PYTHON: ("python3.8", "python3.9", "python3.10", "python3.11", "python3.12", "python3.13"),
}

_RUNTIME_PREFIX = re.compile(r"[a-z]*")
_PYTHON_MODULE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(/[A-Za-z_][A-Za-z0-9_]*)*(\.[A-Za-z_][A-Za-z0-9_]*)*$")
_NODEJS_MODULE = re.compile(r"^[\w-]+(/[\w-]+)*(\.[\w-]+)*$")
_EXPORT_NAME = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# Module name CloudFormation uses when it writes inline function code.
INLINE_MODULE = "index"


def infer_language_family(runtime: str) -> LanguageFamily:
    """Infer the language family from the runtime identifier prefix."""
    prefix = _RUNTIME_PREFIX.match(str(runtime or "")).group(0)  # type: ignore[union-attr]
    try:
        family = LanguageFamily(prefix)
    except ValueError:
        raise ConfigurationError(f"Unsupported runtime '{runtime}': cannot infer language family") from None
    if runtime not in SUPPORTED_RUNTIMES[family]:
        raise ConfigurationError(f"Unsupported {family.value} runtime '{runtime}'")
    return family


def split_handler(handler: str, family: LanguageFamily) -> Tuple[str, str]:
    """Split ``<module>.<export>`` and check the module path suits the language family."""
    module, _, export = str(handler or "").rpartition(".")
    if not module or not _EXPORT_NAME.fullmatch(export):
        raise ConfigurationError(f"Handler '{handler}' must look like '<module>.<function>'")
    pattern = _PYTHON_MODULE if family is LanguageFamily.PYTHON else _NODEJS_MODULE
    if not pattern.fullmatch(module):
        raise ConfigurationError(f"Handler '{handler}' is not a valid {family.value} entry point")
    if family is LanguageFamily.PYTHON and "$" in export:
        raise ConfigurationError(f"Handler '{handler}' is not a valid python entry point")
    return module, export


def content_sha256(content: bytes) -> str:
    """Base64-encoded SHA-256 digest, the form Lambda reports for code."""
    return base64.b64encode(hashlib.sha256(content).digest()).decode("ascii")


@dataclass(frozen=True)
class CodeArtifact:
    """Content-addressed reference to deployable function code."""

    sha256: str
    location: str
    inline_source: Optional[str] = None

    def __post_init__(self) -> None:
        if not str(self.sha256 or "").strip():
            raise ArtifactError(f"Artifact at '{self.location}' has no content hash")
        if not str(self.location or "").strip():
            raise ArtifactError("Artifact location must be provided")

    @property
    def is_placeholder(self) -> bool:
        return self.inline_source is not None

    @property
    def s3_location(self) -> Tuple[str, str]:
        """Return ``(bucket, key)`` for artifacts stored in S3."""
        if not self.location.startswith("s3://"):
            raise ArtifactError(f"Artifact location '{self.location}' is not an S3 URI")
        bucket, _, key = self.location[len("s3://"):].partition("/")
        if not bucket or not key:
            raise ArtifactError(f"Artifact location '{self.location}' must include bucket and key")
        return bucket, key

    @classmethod
    def from_s3(cls, bucket: str, key: str, sha256: str) -> "CodeArtifact":
        return cls(sha256=sha256, location=f"s3://{bucket}/{key.lstrip('/')}")


class ArtifactProvider(Protocol):
    def resolve(self, family: LanguageFamily, handler: str) -> CodeArtifact:
        """Return an artifact for ``handler`` or raise :class:`ArtifactError`."""


class PlaceholderArtifactProvider:
    """Synthesize a minimal handler that logs the incoming event.

    Inline code is always stored as ``index.js`` or ``index.py``, so the
    handler module must be ``index`` for the placeholder to be invocable.
    """

    def resolve(self, family: LanguageFamily, handler: str) -> CodeArtifact:
        module, export = split_handler(handler, family)
        if module != INLINE_MODULE:
            raise ConfigurationError(
                f"Handler '{handler}' needs supplied code; placeholder code only provides '{INLINE_MODULE}.<function>'"
            )
        if family is LanguageFamily.NODEJS:
            filename = f"{INLINE_MODULE}.js"
            source = f"exports.{export} = async (event, context) => {{\n  console.log(JSON.stringify(event));\n}};\n"
        elif family is LanguageFamily.PYTHON:
            filename = f"{INLINE_MODULE}.py"
            source = f"def {export}(event, context):\n    print(event)\n"
        else:
            raise ArtifactError(f"No placeholder template for language family '{family}'")
        return CodeArtifact(
            sha256=content_sha256(source.encode("utf-8")),
            location=f"inline://{filename}",
            inline_source=source,
        )

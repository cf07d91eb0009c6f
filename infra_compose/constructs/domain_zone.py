"""Delegated DNS subzone under an existing parent zone."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from infra_compose.config.types import CompositionDefaults, DomainZoneConfig, parse_config
from infra_compose.core import kinds
from infra_compose.core.declarations import (
    LOGICAL_NAME_PATTERN,
    AttributeReference,
    DeclarationMode,
    DeclarationSink,
    ResourceDeclaration,
    tag_list,
)
from infra_compose.core.errors import ConfigurationError
from infra_compose.logging_utils import get_logger

logger = get_logger(__name__)


def _zone_name(value: str) -> str:
    return str(value or "").strip().rstrip(".").lower()


@dataclass(frozen=True)
class DomainZone:
    parent_zone: ResourceDeclaration
    zone: ResourceDeclaration
    delegation_record: ResourceDeclaration

    @property
    def zone_id(self) -> AttributeReference:
        return self.zone.ref()

    @property
    def name_servers(self) -> AttributeReference:
        return self.zone.attr("NameServers")


class DomainZoneComposer:
    """Declare a subdomain zone and delegate it from the parent zone via NS records."""

    def __init__(self, sink: DeclarationSink, defaults: Optional[CompositionDefaults] = None) -> None:
        self._sink = sink
        self._defaults = defaults or CompositionDefaults()

    def compose(self, config: Union[DomainZoneConfig, Mapping[str, Any]], name: Optional[str] = None) -> DomainZone:
        parsed = parse_config(DomainZoneConfig, config)
        domain = _zone_name(parsed.domain)
        root_domain = _zone_name(parsed.root_domain)
        if not domain.endswith(f".{root_domain}"):
            raise ConfigurationError(f"Domain '{domain}' is not a subdomain of '{root_domain}'")

        prefix = name or domain.replace(".", "-")
        if not LOGICAL_NAME_PATTERN.fullmatch(f"{prefix}-subhosted-zone-ns"):
            raise ConfigurationError(f"Zone name '{prefix}' cannot be used as a declaration name")
        tags: Dict[str, Any] = {"HostedZoneTags": tag_list(parsed.tags)} if parsed.tags else {}
        with self._sink.transaction():
            parent = self._sink.append(
                ResourceDeclaration(
                    kind=kinds.ROUTE53_HOSTED_ZONE,
                    logical_name=f"{prefix}-main-hosted-zone",
                    attributes={"Name": root_domain},
                    mode=DeclarationMode.DATA,
                )
            )
            zone = self._sink.append(
                ResourceDeclaration(
                    kind=kinds.ROUTE53_HOSTED_ZONE,
                    logical_name=f"{prefix}-subhosted-zone",
                    attributes={"Name": domain, **tags},
                )
            )
            record = self._sink.append(
                ResourceDeclaration(
                    kind=kinds.ROUTE53_RECORD_SET,
                    logical_name=f"{prefix}-subhosted-zone-ns",
                    attributes={
                        "HostedZoneId": parent.ref(),
                        "Name": domain,
                        "Type": "NS",
                        "TTL": str(self._defaults.delegation_ttl),
                        "ResourceRecords": zone.attr("NameServers"),
                    },
                    depends_on=(zone.logical_name,),
                )
            )

        logger.info("Composed delegated zone", extra={"domain": domain, "root_domain": root_domain})
        return DomainZone(parent_zone=parent, zone=zone, delegation_record=record)

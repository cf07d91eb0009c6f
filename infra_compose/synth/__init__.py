"""Backend adapters that realize a declaration sink."""

from .cdk import CdkStackRenderer, logical_id

__all__ = ["CdkStackRenderer", "logical_id"]

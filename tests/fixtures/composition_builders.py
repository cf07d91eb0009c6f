"""Builders for composition configs used across unit tests.

Each builder returns a plain mapping in the camelCase shape callers send, so
tests exercise the same parsing path as real callers.
"""

from __future__ import annotations

from typing import Any, Dict, List


def build_function_config(name: str = "Acme-Dev-Worker", **overrides: Any) -> Dict[str, Any]:
    config: Dict[str, Any] = {
        "name": name,
        "runtime": "nodejs14.x",
        "handler": "index.handler",
    }
    config.update(overrides)
    return config


def build_sqs_function_config(name: str = "Acme-Dev-Worker", **overrides: Any) -> Dict[str, Any]:
    return build_function_config(name, **overrides)


def build_vpc_config() -> Dict[str, List[str]]:
    return {"subnetIds": ["subnet-aaa", "subnet-bbb"], "securityGroupIds": ["sg-123"]}


def statement_actions(document: Dict[str, Any]) -> List[List[str]]:
    """Return the action lists of every statement in a rendered policy document."""
    return [list(statement["Action"]) for statement in document["Statement"]]

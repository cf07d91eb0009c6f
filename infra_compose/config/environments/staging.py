"""Staging environment configuration."""

import os

from infra_compose.config.types import EnvironmentConfig

staging_config: EnvironmentConfig = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "us-east-1",
    "function_timeout": 10,
    "log_retention_days": 30,
    "root_domain": "example.dev",
    "tags": {
        "Environment": "staging",
        "Owner": "PlatformTeam",
        "ManagedBy": "infra-compose",
    },
}

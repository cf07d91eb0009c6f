"""Development environment configuration."""

import os

from infra_compose.config.types import EnvironmentConfig

dev_config: EnvironmentConfig = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "us-east-1",
    "function_timeout": 5,
    "log_retention_days": 14,
    "root_domain": "example.dev",
    "tags": {
        "Environment": "dev",
        "Owner": "PlatformTeam",
        "ManagedBy": "infra-compose",
    },
}

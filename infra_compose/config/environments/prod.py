"""Production environment configuration."""

import os

from infra_compose.config.types import EnvironmentConfig

prod_config: EnvironmentConfig = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "us-east-1",
    "function_timeout": 30,
    # Longer retention for audit trails in production
    "log_retention_days": 90,
    "root_domain": "example.com",
    "tags": {
        "Environment": "prod",
        "Owner": "PlatformTeam",
        "ManagedBy": "infra-compose",
        "CostCenter": "Engineering",
    },
}

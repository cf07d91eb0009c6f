#!/usr/bin/env python3
"""
infra-compose CDK App
Composes a queue-triggered versioned function and a delegated DNS zone, then
realizes the declarations as a CloudFormation stack.
"""

import aws_cdk as cdk

from infra_compose.config.environments import get_environment_config
from infra_compose.config.types import CompositionDefaults
from infra_compose.constructs.domain_zone import DomainZoneComposer
from infra_compose.core.declarations import DeclarationSink
from infra_compose.stacks.sqs_function import SqsTriggeredFunctionComposer
from infra_compose.synth.cdk import CdkStackRenderer

app = cdk.App()

# Get environment configuration
environment = app.node.try_get_context("environment") or "dev"
config = get_environment_config(environment)
defaults = CompositionDefaults.from_environment(config)

# CDK environment (account/region)
cdk_env = cdk.Environment(account=config.get("account_id"), region=config.get("region", "us-east-1"))

stack_prefix = f"Acme-{environment}"
tags = dict(config.get("tags", {}))

# ========================================
# COMPOSITION PASS
# ========================================

sink = DeclarationSink(scope=stack_prefix)

worker = SqsTriggeredFunctionComposer(sink, defaults=defaults).compose(
    {
        "name": f"{stack_prefix}-Worker",
        "runtime": "nodejs20.x",
        "handler": "index.handler",
        "environmentVars": {"ENVIRONMENT": environment},
        "configForNewSqsQueue": {"visibilityTimeoutSeconds": 300, "maxReceiveCount": 5},
        "batchSize": 20,
        "batchWindow": 5,
        "usesCodeDeploy": environment == "prod",
        "tags": tags,
    }
)

zone = DomainZoneComposer(sink, defaults=defaults).compose(
    {
        "domain": f"worker.{config.get('root_domain', 'example.dev')}",
        "rootDomain": config.get("root_domain", "example.dev"),
        "tags": tags,
    }
)

# ========================================
# REALIZATION
# ========================================

stack = cdk.Stack(app, f"{stack_prefix}-Composition", env=cdk_env)
renderer = CdkStackRenderer(stack)
renderer.render(sink)

renderer.add_output("WorkerAliasArn", worker.alias_arn, "Stable alias ARN of the worker function")
renderer.add_output("WorkerQueueArn", worker.queue_arn, "Queue consumed by the worker function")
renderer.add_output("WorkerZoneId", zone.zone_id, "Delegated hosted zone id")

cdk.Tags.of(stack).add("Environment", environment)
cdk.Tags.of(stack).add("ManagedBy", "infra-compose")

app.synth()

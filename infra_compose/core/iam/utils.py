"""Reusable IAM helper values for the composers."""

from __future__ import annotations

from typing import Iterable, Tuple

POLICY_VERSION = "2012-10-17"

FUNCTION_SERVICE_PRINCIPALS: Tuple[str, ...] = ("lambda.amazonaws.com", "edgelambda.amazonaws.com")

LOG_WRITE_ACTIONS: Tuple[str, ...] = (
    "logs:CreateLogGroup",
    "logs:CreateLogStream",
    "logs:PutLogEvents",
    "logs:DescribeLogStreams",
)
LOG_RESOURCE_ARN = "arn:aws:logs:*:*:*"

# Order matters: rendered documents keep it verbatim.
NETWORK_INTERFACE_ACTIONS: Tuple[str, ...] = (
    "ec2:DescribeNetworkInterfaces",
    "ec2:CreateNetworkInterface",
    "ec2:DeleteNetworkInterface",
    "ec2:DescribeInstances",
    "ec2:AttachNetworkInterface",
)

QUEUE_CONSUMER_ACTIONS: Tuple[str, ...] = (
    "sqs:SendMessage",
    "sqs:ReceiveMessage",
    "sqs:DeleteMessage",
    "sqs:GetQueueAttributes",
    "sqs:ChangeMessageVisibility",
)


def normalized(values: Iterable[object]) -> Tuple[str, ...]:
    """Return stripped, non-empty strings in input order without deduplication."""
    result = []
    for value in values:
        text = str(value or "").strip()
        if text:
            result.append(text)
    return tuple(result)

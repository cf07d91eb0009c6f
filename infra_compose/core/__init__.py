"""Core declaration model, errors, IAM builders and artifact resolution."""

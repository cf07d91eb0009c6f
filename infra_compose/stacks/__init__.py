from .sqs_function import SqsTriggeredFunction, SqsTriggeredFunctionComposer

__all__ = ["SqsTriggeredFunction", "SqsTriggeredFunctionComposer"]

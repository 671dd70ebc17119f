from .exceptions import MissingDestination, StackpilotError, TemplateNotFound
from .manager import GracefulFailure, Manager, StackSubmission
from .stack import Stack, StackEvent, stack_name_from_path

__all__ = [
    "GracefulFailure",
    "Manager",
    "MissingDestination",
    "Stack",
    "StackEvent",
    "StackSubmission",
    "StackpilotError",
    "TemplateNotFound",
    "stack_name_from_path",
]

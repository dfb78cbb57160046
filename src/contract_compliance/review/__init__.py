"""Review workflow for suggestions and violations."""

from .action_handler import ReviewActionHandler

__all__ = ["ReviewActionHandler"]

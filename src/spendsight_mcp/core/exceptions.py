"""
Custom exceptions for SpendSight MCP.
"""


class SpendSightError(Exception):
    """Base exception for SpendSight errors."""
    pass


class CategoryCycleError(SpendSightError):
    """Raised when parent links in the category tree would form a cycle."""
    pass


class CategoryNotFoundError(SpendSightError):
    """Raised when an operation references a category that does not exist."""
    pass


class ImportFileError(SpendSightError):
    """Raised when an import file cannot be read."""
    pass


class PermissionDeniedError(SpendSightError):
    """Raised when the current user lacks the permission for an action."""
    pass

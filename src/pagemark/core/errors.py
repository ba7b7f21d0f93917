class PagemarkError(Exception):
    """Base error for all user-facing Pagemark exceptions."""


class ConfigurationError(PagemarkError):
    """Raised when configuration is invalid or incomplete."""


class ProjectNotInitializedError(PagemarkError):
    """Raised when .pagemark metadata is missing."""


class ValidationError(PagemarkError):
    """Raised when model invariants fail."""


class AnnotationError(PagemarkError):
    """Raised when annotation operations fail."""


class AnnotationNotFoundError(AnnotationError):
    """Raised when an annotation id does not exist in the store."""


class PermissionDeniedError(AnnotationError):
    """Raised when a reviewer acts on an annotation they do not own."""


class ProgressError(PagemarkError):
    """Raised when page progress operations fail."""


class StoreUnavailableError(PagemarkError):
    """Raised when a persistence adapter cannot be reached."""


class RenderError(PagemarkError):
    """Raised when the renderer output cannot be read."""

"""Exception types shared across Mr Modpack services."""

from typing import Optional


class MrModpackError(Exception):
    """Base class for every error raised by the bundling engine."""


class ApiError(MrModpackError):
    """The catalog (Modrinth) could not be reached or returned garbage."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(ApiError):
    """The requested collection or project does not exist."""

    def __init__(self, message: str = "not found"):
        super().__init__(message, status=404)


class ResolverError(MrModpackError):
    """Dependency resolution cannot continue."""


class NoFilesError(ResolverError):
    """The best release of a project has no downloadable file."""

    def __init__(self, project, release):
        super().__init__(
            f"release {release.version_number} of {project.title} has no files"
        )
        self.project = project
        self.release = release


class BundleError(MrModpackError):
    """The bundle archive could not be written."""


class BundleCancelled(MrModpackError):
    """The owning request was cancelled or ran past its deadline."""

"""Custom exceptions for graph-sbom."""


class GraphSbomError(Exception):
    """Base exception for all graph-sbom operations."""


class ConfigurationError(GraphSbomError):
    """Raised when configuration validation fails."""


class DocumentCompilationError(GraphSbomError):
    """Raised when the dependency graph is inconsistent and no document can be built."""


class UnknownRepositoryError(DocumentCompilationError):
    """Raised when a resolved external component has no originating repository."""


class UnsupportedComponentError(DocumentCompilationError):
    """Raised for a component identity that is neither a project nor a module."""


class MissingManifestError(DocumentCompilationError):
    """Raised when an external component has no manifest and non-maven dependencies are not ignored."""


class KnownLicensesError(GraphSbomError):
    """Raised when the known-license table cannot be loaded."""


class GraphExportError(GraphSbomError):
    """Raised when a dependency graph export file is malformed."""

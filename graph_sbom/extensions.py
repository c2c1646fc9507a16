"""Caller-supplied hooks that customize document compilation."""

from typing import Optional, Protocol

from .models import ModuleComponentId, ProjectInfo, ScmInfo


class TaskExtension(Protocol):
    """Protocol for compilation hooks.

    Implementations can redirect repository URIs (e.g. to an internal
    mirror), rewrite the SCM coordinates reported for a project, and exclude
    workspace projects from the document.

    Example:
        class MirrorExtension(DefaultTaskExtension):
            def map_repo_uri(self, original, module_id):
                return "https://mirror.example.com/maven2"
    """

    def map_repo_uri(self, original: Optional[str], module_id: ModuleComponentId) -> Optional[str]:
        """Return the repository base URI to use for a module (None if unknown)."""
        ...

    def map_scm_for_project(self, original: ScmInfo, project: ProjectInfo) -> ScmInfo:
        """Return the SCM coordinates to report for a workspace project."""
        ...

    def should_create_package_for_project(self, project: ProjectInfo) -> bool:
        """Return False to leave a workspace project out of the document."""
        ...


class DefaultTaskExtension:
    """Identity implementation of TaskExtension; subclass it and override what you need."""

    def map_repo_uri(self, original: Optional[str], module_id: ModuleComponentId) -> Optional[str]:
        return original

    def map_scm_for_project(self, original: ScmInfo, project: ProjectInfo) -> ScmInfo:
        return original

    def should_create_package_for_project(self, project: ProjectInfo) -> bool:
        return True

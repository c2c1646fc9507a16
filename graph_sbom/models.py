"""Data models for the resolved dependency graph and workspace projects."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Version string used by build tools for projects that never declared one
UNSPECIFIED_VERSION = "unspecified"


class ComponentId:
    """Identity of a node in the dependency graph.

    Subclasses are frozen dataclasses, so identities are hashable and compare
    by value. ``display_name`` is the textual join key used by the manifest
    index and the graph export format.
    """

    @property
    def display_name(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True)
class ProjectComponentId(ComponentId):
    """A sub-project of the workspace being described, keyed by its path (e.g. ``:app``)."""

    project_path: str

    @property
    def display_name(self) -> str:
        return self.project_path


@dataclass(frozen=True)
class ModuleComponentId(ComponentId):
    """A published, versioned artifact identified by its maven coordinates."""

    group: str
    name: str
    version: str

    @property
    def display_name(self) -> str:
        return f"{self.group}:{self.name}:{self.version}"

    @classmethod
    def parse(cls, coordinates: str) -> "ModuleComponentId":
        """Parse ``group:name:version`` coordinates.

        Raises:
            ValueError: If the string does not have exactly three non-empty parts
        """
        parts = coordinates.split(":")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Expected group:name:version coordinates, got '{coordinates}'")
        return cls(group=parts[0], name=parts[1], version=parts[2])


@dataclass(eq=False)
class ResolvedComponent:
    """A node of the resolved dependency graph.

    Attributes:
        id: Identity of the selected component
        dependencies: Outgoing edges, in declaration order
        repository_name: Name of the repository the component was resolved from
            (only meaningful for module components)
    """

    id: ComponentId
    dependencies: list["DependencyResult"] = field(default_factory=list)
    repository_name: Optional[str] = None


@dataclass(eq=False)
class DependencyResult:
    """An outgoing edge of a graph node.

    ``selected`` is the node the request resolved to, or None when the
    request could not be resolved (such edges are skipped).
    """

    requested: str
    selected: Optional[ResolvedComponent] = None

    @property
    def is_resolved(self) -> bool:
        return self.selected is not None


@dataclass(frozen=True)
class ProjectInfo:
    """Metadata of one workspace project."""

    name: str
    path: str
    version: str
    root_name: str = ""
    group: str = ""
    description: Optional[str] = None
    project_directory: Optional[Path] = None


@dataclass(frozen=True)
class ScmInfo:
    """Version control coordinates of the workspace."""

    tool: str
    uri: str
    revision: str

    def download_location(self, project: ProjectInfo) -> str:
        """Build an SPDX VCS locator pointing at the project inside the repository."""
        return f"{self.tool}+{self.uri}@{self.revision}#{project.name}[{project.path}]"

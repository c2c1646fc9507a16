"""Compile a resolved dependency graph into an SPDX document.

The compiler walks the graph from its roots, creates one package per distinct
component identity (one per artifact file for external components), and wires
DEPENDS_ON relationships between materialized packages. Nodes that do not
become packages (excluded projects, components without artifacts, components
skipped for lack of a manifest) are collapsed: their parents depend on their
effective children instead.

Example:
    compiler = SbomCompiler(document_info, known_licenses, projects=..., ...)
    document = compiler.compile(roots)
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Union

from semantic_version import Version
from spdx_tools.spdx.model import (
    Actor,
    ActorType,
    CreationInfo,
    Document,
    ExternalPackageRef,
    ExternalPackageRefCategory,
    Package,
    Relationship,
    RelationshipType,
    SpdxNoAssertion,
)

from ._licenses import KnownLicenses, LicenseResolver
from ._manifest import ManifestIndex
from .checksums import compute_checksums
from .config import DocumentInfo, parse_actor
from .exceptions import (
    ConfigurationError,
    DocumentCompilationError,
    MissingManifestError,
    UnknownRepositoryError,
    UnsupportedComponentError,
)
from .extensions import DefaultTaskExtension, TaskExtension
from .locators import NOASSERTION, resolve_locators
from .logging_config import logger
from .models import (
    UNSPECIFIED_VERSION,
    ComponentId,
    ModuleComponentId,
    ProjectComponentId,
    ProjectInfo,
    ResolvedComponent,
    ScmInfo,
)
from .supplier import NOASSERTION_SUPPLIER, build_package_supplier

SPDX_VERSION = "SPDX-2.3"
DOCUMENT_SPDX_ID = "SPDXRef-DOCUMENT"
TOOL_NAME = "graph-sbom"

_INVALID_SPDX_ID_CHARS = re.compile(r"[^a-zA-Z0-9.\-]+")

Supplier = Union[Actor, SpdxNoAssertion]


def utc_now() -> datetime:
    """Current UTC time truncated to seconds, as the naive value spdx_tools writes with a ``Z`` suffix."""
    return datetime.now(timezone.utc).replace(microsecond=0, tzinfo=None)


def _as_creation_timestamp(created: datetime) -> datetime:
    if created.tzinfo is not None:
        created = created.astimezone(timezone.utc).replace(tzinfo=None)
    return created.replace(microsecond=0)


class SpdxIdAllocator:
    """Hands out unique ``SPDXRef-`` identifiers derived from package names."""

    def __init__(self):
        self._used: set[str] = {DOCUMENT_SPDX_ID}

    def allocate(self, name: str) -> str:
        sanitized = _INVALID_SPDX_ID_CHARS.sub("-", name).strip("-.") or "package"
        base_id = f"SPDXRef-{sanitized}"
        spdx_id = base_id
        counter = 1
        while spdx_id in self._used:
            spdx_id = f"{base_id}-{counter}"
            counter += 1
        self._used.add(spdx_id)
        return spdx_id


class SbomCompiler:
    """Builds one SPDX document from a resolved dependency graph.

    An instance holds the mutable state of a single compilation (visited set,
    package table, adjacency and license cache). Build a new instance for
    every document.
    """

    def __init__(
        self,
        document_info: DocumentInfo,
        known_licenses: KnownLicenses,
        projects: Iterable[ProjectInfo] = (),
        resolved_artifacts: Optional[Mapping[ComponentId, Sequence[Union[str, Path]]]] = None,
        repositories: Optional[Mapping[str, str]] = None,
        manifests: Optional[ManifestIndex] = None,
        scm_info: Optional[ScmInfo] = None,
        extension: Optional[TaskExtension] = None,
        ignore_non_maven_dependencies: bool = False,
        created: Optional[datetime] = None,
        project_path: Optional[str] = None,
    ):
        """
        Initialize the compiler.

        Args:
            document_info: Document name, namespace, creator and suppliers
            known_licenses: License URL -> SPDX identifier table
            projects: Metadata of every workspace project
            resolved_artifacts: Artifact files of each resolved component
            repositories: Repository name -> base URI
            manifests: Parsed upstream manifests
            scm_info: Version control coordinates of the workspace
            extension: Hooks customizing repository URIs, SCM info and project exclusion
            ignore_non_maven_dependencies: Skip components without a manifest instead of failing
            created: Fixed creation timestamp (defaults to now)
            project_path: Path of the project the document describes, for logging

        Raises:
            ConfigurationError: If a configured actor string cannot be parsed
        """
        self._document_info = document_info
        self._projects = {project.path: project for project in projects}
        self._artifacts = dict(resolved_artifacts or {})
        self._repositories = dict(repositories or {})
        self._manifests = manifests or ManifestIndex()
        self._scm_info = scm_info
        self._extension: TaskExtension = extension or DefaultTaskExtension()
        self._ignore_non_maven = ignore_non_maven_dependencies
        self._created = _as_creation_timestamp(created) if created else utc_now()
        self._project_path = project_path
        self._license_list_version = known_licenses.license_list_version

        self._creator = parse_actor(document_info.creator, "document creator") if document_info.creator else None
        self._project_supplier: Supplier = (
            parse_actor(document_info.package_supplier, "package supplier")
            if document_info.package_supplier
            else SpdxNoAssertion()
        )

        self._licenses = LicenseResolver(known_licenses)
        self._ids = SpdxIdAllocator()

        self._visited: set[ComponentId] = set()
        self._packages: dict[ComponentId, list[Package]] = {}
        self._edges: dict[ComponentId, list[ComponentId]] = {}
        self._roots: list[ComponentId] = []
        self._root_package: Optional[Package] = self._create_root_package()

    def compile(self, roots: Iterable[ResolvedComponent]) -> Document:
        """
        Traverse all roots and assemble the document.

        Args:
            roots: Root nodes of the resolved graph

        Returns:
            The assembled SPDX document

        Raises:
            DocumentCompilationError: If the graph is internally inconsistent
        """
        for root in roots:
            self.add(root)
        return self.document

    def add(self, root: ResolvedComponent) -> None:
        """Traverse the graph below one root."""
        if root.id not in self._roots:
            self._roots.append(root.id)
        logger.debug(f"Adding dependency graph root {root.id.display_name}")

        stack = [root]
        while stack:
            node = stack.pop()
            if node.id in self._visited:
                continue
            self._visited.add(node.id)
            self._packages[node.id] = self._create_packages(node)

            children = []
            for result in node.dependencies:
                if not result.is_resolved:
                    logger.debug(f"Skipping unresolved dependency {result.requested} of {node.id.display_name}")
                    continue
                children.append(result.selected)
            self._edges[node.id] = [child.id for child in children]
            stack.extend(child for child in reversed(children) if child.id not in self._visited)

    @property
    def document(self) -> Document:
        """Assemble the document from everything added so far."""
        packages = [package for packages in self._packages.values() for package in packages]
        if self._root_package is not None:
            packages.insert(0, self._root_package)

        relationships = self._describes_relationships() + self._dependency_relationships()

        logger.info(
            f"Compiled document '{self._document_info.name}' with {len(packages)} package(s) "
            f"and {len(relationships)} relationship(s)"
        )
        return Document(
            creation_info=self._creation_info(),
            packages=packages,
            relationships=relationships,
            extracted_licensing_info=self._licenses.extracted_licenses,
        )

    # Package creation

    def _create_packages(self, node: ResolvedComponent) -> list[Package]:
        if isinstance(node.id, ProjectComponentId):
            return self._create_project_packages(node.id)
        if isinstance(node.id, ModuleComponentId):
            return self._create_module_packages(node)
        raise UnsupportedComponentError(f"Unsupported component identity: {node.id!r}")

    def _create_project_packages(self, component_id: ProjectComponentId) -> list[Package]:
        project = self._projects.get(component_id.project_path)
        if project is None:
            raise DocumentCompilationError(f"Unknown project '{component_id.project_path}' in dependency graph")

        if not self._extension.should_create_package_for_project(project):
            logger.info(f"Excluding project {project.path} from the document")
            return []

        version = project.version
        if not version or version == UNSPECIFIED_VERSION:
            logger.warning(f"SPDX documents require a version but project {project.name} has no specified version")
            version = NOASSERTION

        if isinstance(self._project_supplier, SpdxNoAssertion):
            logger.warning(f"No package supplier configured for project {project.name}, using NOASSERTION")

        source_info = None
        if self._scm_info is not None:
            scm = self._extension.map_scm_for_project(self._scm_info, project)
            source_info = scm.download_location(project)

        return [
            Package(
                spdx_id=self._ids.allocate(project.name),
                name=project.name,
                download_location=SpdxNoAssertion(),
                version=version,
                supplier=self._project_supplier,
                files_analyzed=False,
                source_info=source_info,
                license_concluded=SpdxNoAssertion(),
                license_declared=SpdxNoAssertion(),
                copyright_text=SpdxNoAssertion(),
                description=project.description or None,
            )
        ]

    def _create_module_packages(self, node: ResolvedComponent) -> list[Package]:
        component_id: ModuleComponentId = node.id
        display_name = component_id.display_name

        files = [Path(f) for f in self._artifacts.get(component_id) or []]
        if not files:
            logger.info(f"No resolved artifact for {display_name}, leaving it out of the document")
            return []

        manifest = self._manifests.get(component_id)
        if manifest is None:
            if self._ignore_non_maven:
                logger.warning(f"No manifest for {display_name}, ignoring non-maven dependency")
                return []
            raise MissingManifestError(f"No manifest found for dependency {display_name}")

        if node.repository_name is None:
            raise UnknownRepositoryError(f"Source repository for {display_name} is unknown")

        repo_uri = self._extension.map_repo_uri(self._repositories.get(node.repository_name), component_id)
        if repo_uri is None:
            logger.warning(
                f"No url known for repository '{node.repository_name}' of {display_name}, "
                f"download location will be NOASSERTION"
            )

        license_declared = self._licenses.resolve(manifest.licenses)
        supplier = self._supplier(build_package_supplier(manifest), display_name)

        packages = []
        for path in files:
            download_location, purl = resolve_locators(repo_uri, component_id, path.name)
            try:
                checksums = compute_checksums(path)
            except OSError as e:
                raise DocumentCompilationError(f"Cannot read artifact {path} of {display_name}: {e}") from e

            external_references = []
            if purl:
                external_references.append(ExternalPackageRef(ExternalPackageRefCategory.PACKAGE_MANAGER, "purl", purl))

            packages.append(
                Package(
                    spdx_id=self._ids.allocate(display_name),
                    name=display_name,
                    download_location=SpdxNoAssertion() if download_location == NOASSERTION else download_location,
                    version=component_id.version,
                    file_name=path.name if len(files) > 1 else None,
                    supplier=supplier,
                    files_analyzed=False,
                    checksums=checksums,
                    homepage=manifest.homepage or None,
                    license_concluded=SpdxNoAssertion(),
                    license_declared=license_declared,
                    copyright_text=SpdxNoAssertion(),
                    external_references=external_references,
                )
            )
        return packages

    def _supplier(self, supplier: str, display_name: str) -> Supplier:
        if supplier == NOASSERTION_SUPPLIER:
            return SpdxNoAssertion()
        try:
            return parse_actor(supplier, "supplier")
        except ConfigurationError:
            logger.warning(f"Unusable supplier '{supplier}' for {display_name}, using NOASSERTION")
            return SpdxNoAssertion()

    def _create_root_package(self) -> Optional[Package]:
        root = self._document_info.root_package
        if root is None:
            return None
        return Package(
            spdx_id=self._ids.allocate(root.name),
            name=root.name,
            download_location=SpdxNoAssertion(),
            version=root.version,
            supplier=parse_actor(root.supplier, "root package supplier"),
            files_analyzed=False,
            license_concluded=SpdxNoAssertion(),
            license_declared=SpdxNoAssertion(),
            copyright_text=SpdxNoAssertion(),
        )

    # Relationships

    def _effective_packages(self, component_id: ComponentId) -> list[Package]:
        """Packages standing in for a node, collapsing through skipped nodes."""
        result: list[Package] = []
        seen: set[ComponentId] = set()
        stack = [component_id]
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            packages = self._packages.get(current)
            if packages:
                result.extend(packages)
            else:
                stack.extend(reversed(self._edges.get(current, [])))
        return result

    def _dependency_relationships(self) -> list[Relationship]:
        relationships = []
        emitted: set[tuple[str, str]] = set()
        for component_id, parents in self._packages.items():
            for child_id in self._edges.get(component_id, []):
                for child in self._effective_packages(child_id):
                    for parent in parents:
                        pair = (parent.spdx_id, child.spdx_id)
                        if parent.spdx_id == child.spdx_id or pair in emitted:
                            continue
                        emitted.add(pair)
                        relationships.append(Relationship(parent.spdx_id, RelationshipType.DEPENDS_ON, child.spdx_id))
        return relationships

    def _describes_relationships(self) -> list[Relationship]:
        root_targets: list[Package] = []
        target_ids: set[str] = set()
        for root_id in self._roots:
            for package in self._effective_packages(root_id):
                if package.spdx_id not in target_ids:
                    target_ids.add(package.spdx_id)
                    root_targets.append(package)

        if self._root_package is not None:
            relationships = [Relationship(DOCUMENT_SPDX_ID, RelationshipType.DESCRIBES, self._root_package.spdx_id)]
            relationships.extend(
                Relationship(self._root_package.spdx_id, RelationshipType.DEPENDS_ON, package.spdx_id)
                for package in root_targets
            )
            return relationships

        if not root_targets:
            logger.warning(
                f"Document '{self._document_info.name}' describes no package"
                + (f" for project {self._project_path}" if self._project_path else "")
            )
        return [Relationship(DOCUMENT_SPDX_ID, RelationshipType.DESCRIBES, package.spdx_id) for package in root_targets]

    # Document

    def _creation_info(self) -> CreationInfo:
        creators = [Actor(ActorType.TOOL, TOOL_NAME)]
        if self._creator is not None:
            creators.append(self._creator)

        license_list_version = None
        if self._license_list_version:
            try:
                license_list_version = Version.coerce(self._license_list_version)
            except ValueError:
                logger.warning(f"Ignoring unparsable license list version '{self._license_list_version}'")

        return CreationInfo(
            spdx_version=SPDX_VERSION,
            spdx_id=DOCUMENT_SPDX_ID,
            name=self._document_info.name,
            document_namespace=self._document_info.namespace,
            creators=creators,
            created=self._created,
            license_list_version=license_list_version,
        )

"""Load a resolved dependency graph export.

A build-tool plugin resolves the graph and writes it as one JSON file; this
module turns that file into ready-to-compile inputs. The export is checked
against ``GRAPH_EXPORT_SCHEMA`` before any node is built.

Component ids are ``project:<path>`` for workspace projects (e.g.
``project::app``) and ``group:name:version`` for external modules.

Example export::

    {
        "projects": [{"name": "app", "path": ":app", "version": "1.0"}],
        "roots": ["project::app"],
        "components": [
            {"id": "project::app", "dependencies": ["com.test:test:1.0.0"]},
            {"id": "com.test:test:1.0.0", "repository": "MavenRepo", "dependencies": []}
        ],
        "artifacts": {"com.test:test:1.0.0": ["libs/test-1.0.0.jar"]},
        "repositories": [{"name": "MavenRepo", "type": "maven", "url": "https://repo.maven.apache.org/maven2/"}],
        "manifests": {"com.test:test:1.0.0": {"licenses": [...], "url": "..."}}
    }
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import jsonschema

from graph_sbom.logging_config import logger

from ._manifest import ManifestIndex
from .exceptions import GraphExportError
from .models import (
    ComponentId,
    DependencyResult,
    ModuleComponentId,
    ProjectComponentId,
    ProjectInfo,
    ResolvedComponent,
)

PROJECT_ID_PREFIX = "project:"

# Only maven repositories have a layout we can synthesize locators for
MAVEN_REPOSITORY_TYPE = "maven"

_DEPENDENCY_SCHEMA = {
    "oneOf": [
        {"type": "string", "minLength": 1},
        {
            "type": "object",
            "properties": {
                "requested": {"type": "string"},
                "selected": {"type": ["string", "null"]},
            },
            "required": ["requested"],
        },
    ]
}

GRAPH_EXPORT_SCHEMA = {
    "type": "object",
    "properties": {
        "projects": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "path": {"type": "string", "minLength": 1},
                    "version": {"type": "string"},
                    "root_name": {"type": "string"},
                    "group": {"type": "string"},
                    "description": {"type": ["string", "null"]},
                    "project_directory": {"type": ["string", "null"]},
                },
                "required": ["name", "path"],
            },
        },
        "roots": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "components": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string", "minLength": 1},
                    "repository": {"type": ["string", "null"]},
                    "dependencies": {"type": "array", "items": _DEPENDENCY_SCHEMA},
                },
                "required": ["id"],
            },
        },
        "artifacts": {
            "type": "object",
            "additionalProperties": {"type": "array", "items": {"type": "string", "minLength": 1}},
        },
        "repositories": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "type": {"type": "string"},
                    "url": {"type": ["string", "null"]},
                },
                "required": ["name"],
            },
        },
        "manifests": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "licenses": {"type": ["array", "null"], "items": {"type": "object"}},
                    "developers": {"type": ["array", "null"], "items": {"type": "object"}},
                    "organization": {"type": ["object", "string", "null"]},
                },
            },
        },
    },
    "required": ["roots", "components"],
}


@dataclass
class GraphExport:
    """Inputs of one compilation, as read from a graph export."""

    roots: list[ResolvedComponent]
    projects: list[ProjectInfo] = field(default_factory=list)
    artifacts: dict[ComponentId, list[Path]] = field(default_factory=dict)
    repositories: dict[str, str] = field(default_factory=dict)
    manifests: ManifestIndex = field(default_factory=ManifestIndex)

    @property
    def project_path(self) -> Optional[str]:
        """Path of the first root project, the project the document describes."""
        for root in self.roots:
            if isinstance(root.id, ProjectComponentId):
                return root.id.project_path
        return None

    @property
    def component_count(self) -> int:
        seen: set[ComponentId] = set()
        stack = list(self.roots)
        while stack:
            node = stack.pop()
            if node.id in seen:
                continue
            seen.add(node.id)
            stack.extend(result.selected for result in node.dependencies if result.is_resolved)
        return len(seen)


def parse_component_id(value: str) -> ComponentId:
    """
    Parse an export component id.

    Raises:
        GraphExportError: If the id is neither a project id nor module coordinates
    """
    if value.startswith(PROJECT_ID_PREFIX):
        project_path = value[len(PROJECT_ID_PREFIX) :]
        if not project_path:
            raise GraphExportError(f"Empty project path in component id '{value}'")
        return ProjectComponentId(project_path)
    try:
        return ModuleComponentId.parse(value)
    except ValueError as e:
        raise GraphExportError(f"Invalid component id: {e}") from e


def _parse_projects(entries: list[dict[str, Any]], base_dir: Path) -> list[ProjectInfo]:
    projects = []
    for entry in entries:
        directory = entry.get("project_directory")
        projects.append(
            ProjectInfo(
                name=entry["name"],
                path=entry["path"],
                version=entry.get("version") or "",
                root_name=entry.get("root_name") or "",
                group=entry.get("group") or "",
                description=entry.get("description"),
                project_directory=base_dir / directory if directory else None,
            )
        )
    return projects


def _parse_repositories(entries: list[dict[str, Any]]) -> dict[str, str]:
    repositories = {}
    for entry in entries:
        repo_type = (entry.get("type") or MAVEN_REPOSITORY_TYPE).lower()
        if repo_type != MAVEN_REPOSITORY_TYPE:
            logger.debug(f"Ignoring {repo_type} repository '{entry['name']}'")
            continue
        if entry.get("url"):
            repositories[entry["name"]] = entry["url"]
        else:
            logger.warning(f"Maven repository '{entry['name']}' has no url")
    return repositories


def _build_nodes(components: list[dict[str, Any]]) -> dict[ComponentId, ResolvedComponent]:
    nodes: dict[ComponentId, ResolvedComponent] = {}
    for entry in components:
        component_id = parse_component_id(entry["id"])
        if component_id in nodes:
            raise GraphExportError(f"Duplicate component '{entry['id']}' in graph export")
        nodes[component_id] = ResolvedComponent(id=component_id, repository_name=entry.get("repository"))

    for entry in components:
        node = nodes[parse_component_id(entry["id"])]
        for dependency in entry.get("dependencies") or []:
            if isinstance(dependency, str):
                requested, selected = dependency, dependency
            else:
                requested, selected = dependency["requested"], dependency.get("selected")

            if selected is None:
                node.dependencies.append(DependencyResult(requested=requested))
                continue

            selected_id = parse_component_id(selected)
            if selected_id not in nodes:
                raise GraphExportError(f"Component '{entry['id']}' depends on undeclared component '{selected}'")
            node.dependencies.append(DependencyResult(requested=requested, selected=nodes[selected_id]))
    return nodes


def parse_graph_export(data: dict[str, Any], base_dir: Union[str, Path] = ".") -> GraphExport:
    """
    Build compiler inputs from a parsed graph export.

    Args:
        data: Parsed export JSON
        base_dir: Directory artifact and project paths are relative to

    Returns:
        GraphExport instance

    Raises:
        GraphExportError: If the export is malformed
    """
    try:
        jsonschema.validate(instance=data, schema=GRAPH_EXPORT_SCHEMA)
    except jsonschema.ValidationError as e:
        error_path = ".".join(str(p) for p in e.absolute_path) if e.absolute_path else None
        location = f" at {error_path}" if error_path else ""
        raise GraphExportError(f"Invalid graph export{location}: {e.message}") from e

    base_dir = Path(base_dir)
    nodes = _build_nodes(data["components"])

    roots = []
    for root in data["roots"]:
        root_id = parse_component_id(root)
        if root_id not in nodes:
            raise GraphExportError(f"Root '{root}' is not a declared component")
        roots.append(nodes[root_id])

    artifacts: dict[ComponentId, list[Path]] = {}
    for component, files in (data.get("artifacts") or {}).items():
        artifacts[parse_component_id(component)] = [base_dir / f for f in files]

    export = GraphExport(
        roots=roots,
        projects=_parse_projects(data.get("projects") or [], base_dir),
        artifacts=artifacts,
        repositories=_parse_repositories(data.get("repositories") or []),
        manifests=ManifestIndex.from_records(data.get("manifests") or {}),
    )
    logger.debug(
        f"Loaded graph export: {len(roots)} root(s), {len(nodes)} component(s), {len(export.repositories)} repository(ies)"
    )
    return export


def load_graph_export(path: Union[str, Path]) -> GraphExport:
    """
    Read a graph export file.

    Relative artifact paths are resolved against the directory of the file.

    Raises:
        GraphExportError: If the file cannot be read or is malformed
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise GraphExportError(f"Could not read graph export {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise GraphExportError(f"Invalid JSON in graph export {path}: {e}") from e

    if not isinstance(data, dict):
        raise GraphExportError(f"Graph export {path} must contain a JSON object")

    logger.info(f"Loading dependency graph from {path}")
    return parse_graph_export(data, base_dir=path.parent)

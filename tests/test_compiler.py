"""Tests for the graph-to-document compiler."""

import hashlib
import logging
from dataclasses import dataclass

import pytest
from semantic_version import Version
from spdx_tools.spdx.model import (
    Actor,
    ActorType,
    Checksum,
    ChecksumAlgorithm,
    ExternalPackageRefCategory,
    RelationshipType,
    SpdxNoAssertion,
)

from graph_sbom._manifest import ManifestIndex
from graph_sbom.compiler import DOCUMENT_SPDX_ID, SbomCompiler, SpdxIdAllocator
from graph_sbom.config import DocumentInfo
from graph_sbom.exceptions import (
    DocumentCompilationError,
    MissingManifestError,
    UnknownRepositoryError,
    UnsupportedComponentError,
)
from graph_sbom.extensions import DefaultTaskExtension
from graph_sbom.models import (
    ComponentId,
    DependencyResult,
    ModuleComponentId,
    ProjectComponentId,
    ProjectInfo,
    ResolvedComponent,
    ScmInfo,
)

CENTRAL = "MavenRepo"
OTHER = "Other"
REPOSITORIES = {
    CENTRAL: "https://repo.maven.apache.org/maven2/",
    OTHER: "https://repo.other.org/maven2",
}

PROJECTS = [
    ProjectInfo(name="app", path=":app", version="1.0.0", description="The application"),
    ProjectInfo(name="lib", path=":lib", version="unspecified"),
    ProjectInfo(name="platform", path=":platform", version="1.0.0"),
]

APACHE_RECORD = {
    "licenses": [{"name": "Apache License 2.0", "url": "https://www.apache.org/licenses/LICENSE-2.0"}],
    "url": "https://example.com/project",
    "organization": {"name": "Example"},
}


def module(coordinates, *dependencies, repository=CENTRAL):
    return ResolvedComponent(
        id=ModuleComponentId.parse(coordinates),
        dependencies=[DependencyResult(d.id.display_name, d) for d in dependencies],
        repository_name=repository,
    )


def project(path, *dependencies):
    return ResolvedComponent(
        id=ProjectComponentId(path),
        dependencies=[DependencyResult(d.id.display_name, d) for d in dependencies],
    )


def names_by_id(document):
    return {package.spdx_id: package.name for package in document.packages}


def depends_on(document):
    names = names_by_id(document)
    return {
        (names[r.spdx_element_id], names[r.related_spdx_element_id])
        for r in document.relationships
        if r.relationship_type == RelationshipType.DEPENDS_ON
    }


def described(document):
    names = names_by_id(document)
    return [
        names[r.related_spdx_element_id]
        for r in document.relationships
        if r.relationship_type == RelationshipType.DESCRIBES
    ]


def package_named(document, name):
    matches = [p for p in document.packages if p.name == name]
    assert len(matches) == 1, f"expected one package named {name}, found {len(matches)}"
    return matches[0]


@pytest.fixture
def make_compiler(document_info, known_licenses, created, artifact_file):
    """Factory building a compiler with artifacts and manifests for the given modules."""

    def _make(*modules, manifests=None, **overrides):
        options = {
            "document_info": document_info,
            "known_licenses": known_licenses,
            "projects": PROJECTS,
            "resolved_artifacts": {
                m.id: [artifact_file(f"{m.id.name}-{m.id.version}.jar", m.id.display_name.encode())]
                for m in modules
            },
            "repositories": REPOSITORIES,
            "manifests": (
                manifests
                if manifests is not None
                else ManifestIndex.from_records({m.id.display_name: APACHE_RECORD for m in modules})
            ),
            "created": created,
        }
        options.update(overrides)
        return SbomCompiler(**options)

    return _make


class TestSingleDependency:
    @pytest.fixture
    def document(self, make_compiler):
        dep = module("com.test:test:1.0.0")
        app = project(":app", dep)
        return make_compiler(dep).compile([app])

    def test_packages(self, document):
        assert sorted(p.name for p in document.packages) == ["app", "com.test:test:1.0.0"]

    def test_module_package(self, document):
        package = package_named(document, "com.test:test:1.0.0")

        assert package.version == "1.0.0"
        assert package.download_location == "https://repo.maven.apache.org/maven2/com/test/test/1.0.0/test-1.0.0.jar"
        assert package.homepage == "https://example.com/project"
        assert package.supplier == Actor(ActorType.ORGANIZATION, "Example")
        assert str(package.license_declared) == "Apache-2.0"
        assert isinstance(package.license_concluded, SpdxNoAssertion)
        assert isinstance(package.copyright_text, SpdxNoAssertion)
        assert package.files_analyzed is False
        assert package.file_name is None

    def test_purl(self, document):
        package = package_named(document, "com.test:test:1.0.0")

        assert len(package.external_references) == 1
        ref = package.external_references[0]
        assert ref.category == ExternalPackageRefCategory.PACKAGE_MANAGER
        assert ref.reference_type == "purl"
        assert ref.locator == "pkg:maven/com.test/test@1.0.0"

    def test_checksums(self, document):
        package = package_named(document, "com.test:test:1.0.0")
        content = b"com.test:test:1.0.0"

        assert package.checksums == [
            Checksum(ChecksumAlgorithm.SHA1, hashlib.sha1(content).hexdigest()),
            Checksum(ChecksumAlgorithm.SHA256, hashlib.sha256(content).hexdigest()),
        ]

    def test_project_package(self, document):
        package = package_named(document, "app")

        assert package.version == "1.0.0"
        assert package.description == "The application"
        assert package.supplier == Actor(ActorType.ORGANIZATION, "Example Inc")
        assert isinstance(package.download_location, SpdxNoAssertion)
        assert package.source_info is None

    def test_relationships(self, document):
        assert described(document) == ["app"]
        assert depends_on(document) == {("app", "com.test:test:1.0.0")}

    def test_creation_info(self, document, created):
        info = document.creation_info

        assert info.spdx_version == "SPDX-2.3"
        assert info.spdx_id == DOCUMENT_SPDX_ID
        assert info.name == "test-document"
        assert info.document_namespace == "https://example.com/spdx/test-document"
        assert info.created == created
        assert Actor(ActorType.TOOL, "graph-sbom") in info.creators
        assert Actor(ActorType.ORGANIZATION, "Example Inc") in info.creators
        assert info.license_list_version == Version("3.21.0")


class TestDeduplication:
    def test_diamond_yields_one_package_per_identity(self, make_compiler):
        shared = module("com.test:shared:1.0.0")
        left = module("com.test:left:1.0.0", shared)
        right = module("com.test:right:1.0.0", shared)
        app = project(":app", left, right)

        document = make_compiler(shared, left, right).compile([app])

        names = [p.name for p in document.packages]
        assert len(names) == len(set(names)) == 4
        assert depends_on(document) == {
            ("app", "com.test:left:1.0.0"),
            ("app", "com.test:right:1.0.0"),
            ("com.test:left:1.0.0", "com.test:shared:1.0.0"),
            ("com.test:right:1.0.0", "com.test:shared:1.0.0"),
        }

    def test_no_dangling_relationships(self, make_compiler):
        shared = module("com.test:shared:1.0.0")
        left = module("com.test:left:1.0.0", shared)
        bom = module("com.test:bom:1.0.0", shared)
        app = project(":app", left, bom)

        # bom has no artifact and is collapsed
        document = make_compiler(shared, left).compile([app])

        ids = {p.spdx_id for p in document.packages} | {DOCUMENT_SPDX_ID}
        for relationship in document.relationships:
            assert relationship.spdx_element_id in ids
            assert relationship.related_spdx_element_id in ids

    def test_no_duplicate_relationships(self, make_compiler):
        shared = module("com.test:shared:1.0.0")
        app = project(":app", shared, shared)

        document = make_compiler(shared).compile([app])

        pairs = [(r.spdx_element_id, r.related_spdx_element_id) for r in document.relationships]
        assert len(pairs) == len(set(pairs))

    def test_revisit_is_idempotent(self, make_compiler):
        shared = module("com.test:shared:1.0.0")
        app = project(":app", shared)
        lib = project(":lib", shared)
        compiler = make_compiler(shared)

        compiler.add(app)
        compiler.add(lib)
        compiler.add(app)
        document = compiler.document

        assert sorted(p.name for p in document.packages) == ["app", "com.test:shared:1.0.0", "lib"]
        assert depends_on(document) == {("app", "com.test:shared:1.0.0"), ("lib", "com.test:shared:1.0.0")}
        assert sorted(described(document)) == ["app", "lib"]

    def test_cycle_terminates(self, make_compiler):
        first = module("com.test:first:1.0.0")
        second = module("com.test:second:1.0.0", first)
        first.dependencies.append(DependencyResult(second.id.display_name, second))
        app = project(":app", first)

        document = make_compiler(first, second).compile([app])

        assert depends_on(document) == {
            ("app", "com.test:first:1.0.0"),
            ("com.test:first:1.0.0", "com.test:second:1.0.0"),
            ("com.test:second:1.0.0", "com.test:first:1.0.0"),
        }

    def test_unresolved_dependency_is_skipped(self, make_compiler):
        dep = module("com.test:test:1.0.0")
        app = project(":app", dep)
        app.dependencies.append(DependencyResult("com.test:missing:+"))

        document = make_compiler(dep).compile([app])

        assert depends_on(document) == {("app", "com.test:test:1.0.0")}


class TestCollapse:
    def test_excluded_project_is_collapsed(self, make_compiler):
        class ExcludePlatform(DefaultTaskExtension):
            def should_create_package_for_project(self, project):
                return project.path != ":platform"

        dep = module("com.test:test:1.0.0")
        platform = project(":platform", dep)
        app = project(":app", platform)

        document = make_compiler(dep, extension=ExcludePlatform()).compile([app])

        assert "platform" not in [p.name for p in document.packages]
        assert depends_on(document) == {("app", "com.test:test:1.0.0")}

    def test_module_without_artifact_is_collapsed(self, make_compiler, caplog):
        dep = module("com.test:test:1.0.0")
        bom = module("com.test:bom:1.0.0", dep)
        app = project(":app", bom)

        with caplog.at_level(logging.INFO, logger="graph_sbom"):
            document = make_compiler(dep).compile([app])

        assert "com.test:bom:1.0.0" not in [p.name for p in document.packages]
        assert depends_on(document) == {("app", "com.test:test:1.0.0")}
        assert "No resolved artifact for com.test:bom:1.0.0" in caplog.text

    def test_nested_collapse(self, make_compiler):
        dep = module("com.test:test:1.0.0")
        inner = module("com.test:inner-bom:1.0.0", dep)
        outer = module("com.test:outer-bom:1.0.0", inner)
        app = project(":app", outer)

        document = make_compiler(dep).compile([app])

        assert depends_on(document) == {("app", "com.test:test:1.0.0")}

    def test_collapsed_root_describes_its_children(self, make_compiler):
        dep = module("com.test:test:1.0.0")
        bom = module("com.test:bom:1.0.0", dep)

        document = make_compiler(dep).compile([bom])

        assert described(document) == ["com.test:test:1.0.0"]


class TestRootPackage:
    def test_root_package_is_sole_describes_target(self, make_compiler):
        document_info = DocumentInfo.from_options(
            name="test-document",
            namespace="https://example.com/spdx/test-document",
            package_supplier="Organization: Example Inc",
            root_package_name="product",
            root_package_version="2.0",
            root_package_supplier="Organization: Product Co",
        )
        dep = module("com.test:test:1.0.0")
        app = project(":app", dep)
        lib = project(":lib")

        document = make_compiler(dep, document_info=document_info).compile([app, lib])

        root = package_named(document, "product")
        assert root.version == "2.0"
        assert root.supplier == Actor(ActorType.ORGANIZATION, "Product Co")
        assert described(document) == ["product"]
        assert depends_on(document) == {
            ("product", "app"),
            ("product", "lib"),
            ("app", "com.test:test:1.0.0"),
        }


class TestProjectPackages:
    def test_unspecified_version_is_noassertion(self, make_compiler, caplog):
        with caplog.at_level(logging.WARNING, logger="graph_sbom"):
            document = make_compiler().compile([project(":lib")])

        assert package_named(document, "lib").version == "NOASSERTION"
        assert "project lib has no specified version" in caplog.text

    def test_missing_supplier_is_noassertion(self, make_compiler, caplog):
        document_info = DocumentInfo.from_options(name="doc", namespace="https://example.com/spdx/doc")

        with caplog.at_level(logging.WARNING, logger="graph_sbom"):
            document = make_compiler(document_info=document_info).compile([project(":app")])

        assert isinstance(package_named(document, "app").supplier, SpdxNoAssertion)
        assert "No package supplier configured for project app" in caplog.text

    def test_source_info_from_scm(self, make_compiler):
        scm = ScmInfo(tool="git", uri="github.com/example/app", revision="abc123")

        document = make_compiler(scm_info=scm).compile([project(":app")])

        assert package_named(document, "app").source_info == "git+github.com/example/app@abc123#app[:app]"

    def test_scm_remap_hook(self, make_compiler):
        class Remap(DefaultTaskExtension):
            def map_scm_for_project(self, original, project):
                return ScmInfo(tool=original.tool, uri="github.com/mirror/app", revision=original.revision)

        scm = ScmInfo(tool="git", uri="github.com/example/app", revision="abc123")

        document = make_compiler(scm_info=scm, extension=Remap()).compile([project(":app")])

        assert package_named(document, "app").source_info == "git+github.com/mirror/app@abc123#app[:app]"

    def test_unknown_project_is_fatal(self, make_compiler):
        with pytest.raises(DocumentCompilationError, match="Unknown project ':missing'"):
            make_compiler().compile([project(":missing")])


class TestModulePackages:
    def test_other_repository_purl(self, make_compiler):
        dep = module("com.test:test:1.0.0", repository=OTHER)

        document = make_compiler(dep).compile([project(":app", dep)])

        package = package_named(document, "com.test:test:1.0.0")
        assert package.download_location == "https://repo.other.org/maven2/com/test/test/1.0.0/test-1.0.0.jar"
        assert package.external_references[0].locator == (
            "pkg:maven/com.test/test@1.0.0?repository_url=repo.other.org%2Fmaven2"
        )

    def test_repository_remap_hook(self, make_compiler):
        class Mirror(DefaultTaskExtension):
            def map_repo_uri(self, original, module_id):
                return "https://mirror.example.com/maven2"

        dep = module("com.test:test:1.0.0")

        document = make_compiler(dep, extension=Mirror()).compile([project(":app", dep)])

        package = package_named(document, "com.test:test:1.0.0")
        assert package.download_location.startswith("https://mirror.example.com/maven2/")

    def test_repository_without_url(self, make_compiler):
        dep = module("com.test:test:1.0.0", repository="Unlisted")

        document = make_compiler(dep).compile([project(":app", dep)])

        package = package_named(document, "com.test:test:1.0.0")
        assert isinstance(package.download_location, SpdxNoAssertion)
        assert package.external_references == []

    def test_missing_repository_is_fatal(self, make_compiler):
        dep = module("com.test:test:1.0.0", repository=None)

        with pytest.raises(UnknownRepositoryError, match="com.test:test:1.0.0"):
            make_compiler(dep).compile([project(":app", dep)])

    def test_missing_manifest_is_fatal(self, make_compiler):
        dep = module("com.test:test:1.0.0")

        with pytest.raises(MissingManifestError):
            make_compiler(dep, manifests=ManifestIndex()).compile([project(":app", dep)])

    def test_missing_manifest_ignored(self, make_compiler, caplog):
        dep = module("com.test:test:1.0.0")

        with caplog.at_level(logging.WARNING, logger="graph_sbom"):
            document = make_compiler(dep, manifests=ManifestIndex(), ignore_non_maven_dependencies=True).compile(
                [project(":app", dep)]
            )

        assert [p.name for p in document.packages] == ["app"]
        assert "No manifest for com.test:test:1.0.0" in caplog.text

    def test_unsupported_identity_is_fatal(self, make_compiler):
        @dataclass(frozen=True)
        class LibraryComponentId(ComponentId):
            name: str

            @property
            def display_name(self):
                return self.name

        node = ResolvedComponent(id=LibraryComponentId("local.jar"))

        with pytest.raises(UnsupportedComponentError):
            make_compiler().compile([project(":app", node)])

    def test_missing_artifact_file_is_fatal(self, make_compiler, tmp_path):
        dep = module("com.test:test:1.0.0")
        compiler = make_compiler(dep, resolved_artifacts={dep.id: [tmp_path / "gone.jar"]})

        with pytest.raises(DocumentCompilationError, match="Cannot read artifact"):
            compiler.compile([project(":app", dep)])

    def test_multiple_artifacts(self, make_compiler, artifact_file):
        dep = module("com.test:test:1.0.0")
        consumer = module("com.test:consumer:1.0.0", dep)
        files = [artifact_file("test-1.0.0.jar", b"classes"), artifact_file("test-1.0.0-sources.jar", b"sources")]
        compiler = make_compiler(
            consumer,
            dep,
            resolved_artifacts={
                dep.id: files,
                consumer.id: [artifact_file("consumer-1.0.0.jar")],
            },
        )

        document = compiler.compile([consumer])

        packages = [p for p in document.packages if p.name == "com.test:test:1.0.0"]
        assert sorted(p.file_name for p in packages) == ["test-1.0.0-sources.jar", "test-1.0.0.jar"]
        assert len({p.spdx_id for p in packages}) == 2
        targets = {
            r.related_spdx_element_id
            for r in document.relationships
            if r.relationship_type == RelationshipType.DEPENDS_ON
        }
        assert targets == {p.spdx_id for p in packages}

    def test_no_license_is_noassertion(self, make_compiler):
        dep = module("com.test:test:1.0.0")
        manifests = ManifestIndex.from_records({"com.test:test:1.0.0": {"url": "https://example.com"}})

        document = make_compiler(dep, manifests=manifests).compile([project(":app", dep)])

        package = package_named(document, "com.test:test:1.0.0")
        assert isinstance(package.license_declared, SpdxNoAssertion)
        assert isinstance(package.supplier, SpdxNoAssertion)

    def test_two_licenses(self, make_compiler):
        dep = module("com.test:test:1.0.0")
        manifests = ManifestIndex.from_records(
            {
                "com.test:test:1.0.0": {
                    "licenses": [
                        {"name": "Apache 2", "url": "https://www.apache.org/licenses/LICENSE-2.0"},
                        {"name": "MIT", "url": "https://opensource.org/licenses/MIT"},
                    ]
                }
            }
        )

        document = make_compiler(dep, manifests=manifests).compile([project(":app", dep)])

        assert str(package_named(document, "com.test:test:1.0.0").license_declared) == "Apache-2.0 AND MIT"

    def test_extracted_license_shared_across_packages(self, make_compiler):
        record = {"licenses": [{"name": "Custom License", "url": "https://example.com/LICENSE"}]}
        first = module("com.test:first:1.0.0")
        second = module("com.test:second:1.0.0")
        manifests = ManifestIndex.from_records({"com.test:first:1.0.0": record, "com.test:second:1.0.0": record})

        document = make_compiler(first, second, manifests=manifests).compile([project(":app", first, second)])

        assert [e.license_id for e in document.extracted_licensing_info] == ["LicenseRef-Custom-License"]
        first_license = package_named(document, "com.test:first:1.0.0").license_declared
        second_license = package_named(document, "com.test:second:1.0.0").license_declared
        assert first_license is second_license

    def test_developer_supplier(self, make_compiler):
        dep = module("com.test:test:1.0.0")
        manifests = ManifestIndex.from_records(
            {"com.test:test:1.0.0": {"developers": [{"name": "Jane Doe", "email": "jane@example.com"}]}}
        )

        document = make_compiler(dep, manifests=manifests).compile([project(":app", dep)])

        assert package_named(document, "com.test:test:1.0.0").supplier == Actor(
            ActorType.PERSON, "Jane Doe", "jane@example.com"
        )


class TestSpdxIdAllocator:
    def test_sanitizes_names(self):
        assert SpdxIdAllocator().allocate("com.test:test:1.0.0") == "SPDXRef-com.test-test-1.0.0"

    def test_ids_are_unique(self):
        allocator = SpdxIdAllocator()
        assert allocator.allocate("app") == "SPDXRef-app"
        assert allocator.allocate("app") == "SPDXRef-app-1"
        assert allocator.allocate("app") == "SPDXRef-app-2"

    def test_document_id_is_reserved(self):
        assert SpdxIdAllocator().allocate("DOCUMENT") == "SPDXRef-DOCUMENT-1"

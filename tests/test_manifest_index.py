"""Tests for the manifest index and manifest record parsing."""

import logging

from graph_sbom._manifest import ManifestIndex, OrganizationInfo, parse_manifest
from graph_sbom._manifest.index import non_empty, validate_url
from graph_sbom.models import ModuleComponentId, ProjectComponentId


class TestNonEmpty:
    def test_blank_values_are_absent(self):
        assert non_empty(None) is None
        assert non_empty("") is None
        assert non_empty("   ") is None

    def test_value_is_stripped(self):
        assert non_empty("  Example  ") == "Example"

    def test_control_characters_are_removed(self):
        assert non_empty("Exa\x00mple") == "Example"


class TestValidateUrl:
    def test_valid_url(self):
        assert validate_url("https://example.com/project", "com.test:test:1.0.0") == "https://example.com/project"

    def test_missing_url(self):
        assert validate_url(None, "com.test:test:1.0.0") == ""

    def test_invalid_url_is_dropped_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="graph_sbom"):
            result = validate_url("not a url", "com.test:test:1.0.0")

        assert result == ""
        assert "Ignoring invalid url detected in project 'com.test:test:1.0.0'" in caplog.text

    def test_unsupported_scheme(self):
        assert validate_url("javascript:alert(1)", "com.test:test:1.0.0") == ""

    def test_scm_scheme_is_accepted(self):
        assert validate_url("git://github.com/example/project.git", "x:y:1") == "git://github.com/example/project.git"


class TestParseManifest:
    def test_full_record(self):
        manifest = parse_manifest(
            {
                "licenses": [{"name": "Apache-2.0", "url": "https://www.apache.org/licenses/LICENSE-2.0"}],
                "url": "https://example.com",
                "organization": {"name": "Example", "url": "https://example.com"},
                "developers": [{"name": "Jane Doe", "email": "jane@example.com", "organization": "Example"}],
                "packaging": "aar",
            },
            "com.test:test:1.0.0",
        )

        assert manifest.licenses[0].url == "https://www.apache.org/licenses/LICENSE-2.0"
        assert manifest.homepage == "https://example.com"
        assert manifest.organization == OrganizationInfo(name="Example", url="https://example.com")
        assert manifest.developers[0].email == "jane@example.com"
        assert manifest.packaging == "aar"

    def test_empty_record_defaults(self):
        manifest = parse_manifest({}, "com.test:test:1.0.0")

        assert manifest.licenses == ()
        assert manifest.homepage == ""
        assert manifest.organization is None
        assert manifest.developers == ()
        assert manifest.packaging == "jar"

    def test_blank_fields_become_none(self):
        manifest = parse_manifest(
            {
                "licenses": [{"name": " ", "url": ""}],
                "developers": [{"name": "", "email": "  ", "organization": None}],
            },
            "com.test:test:1.0.0",
        )

        assert manifest.licenses[0].name is None
        assert manifest.licenses[0].url is None
        assert manifest.developers[0].name is None
        assert manifest.developers[0].email is None

    def test_homepage_alias(self):
        manifest = parse_manifest({"homepage": "https://example.com"}, "com.test:test:1.0.0")
        assert manifest.homepage == "https://example.com"

    def test_null_url_falls_back_to_homepage(self):
        manifest = parse_manifest({"url": None, "homepage": "https://example.com"}, "com.test:test:1.0.0")
        assert manifest.homepage == "https://example.com"

    def test_invalid_homepage_is_empty(self):
        manifest = parse_manifest({"url": "${project.url}"}, "com.test:test:1.0.0")
        assert manifest.homepage == ""

    def test_invalid_organization_url_is_empty(self):
        manifest = parse_manifest({"organization": {"name": "Example", "url": "example"}}, "com.test:test:1.0.0")
        assert manifest.organization == OrganizationInfo(name="Example", url="")

    def test_flattened_organization(self):
        manifest = parse_manifest({"organization": "Example"}, "com.test:test:1.0.0")
        assert manifest.organization.name == "Example"


class TestManifestIndex:
    def test_lookup_by_component_id(self):
        index = ManifestIndex.from_records({"com.test:test:1.0.0": {"packaging": "jar"}})

        module = ModuleComponentId("com.test", "test", "1.0.0")
        assert index.get(module) is not None
        assert module in index
        assert "com.test:test:1.0.0" in index
        assert len(index) == 1

    def test_missing_component(self):
        index = ManifestIndex.from_records({})

        assert index.get(ModuleComponentId("com.test", "other", "1.0.0")) is None
        assert ProjectComponentId(":app") not in index

    def test_iterates_display_names(self):
        index = ManifestIndex.from_records(
            {
                "a:a:1": {"packaging": "jar"},
                "b:b:1": {"packaging": "aar"},
                "c:c:1": {},
            }
        )
        assert sorted(index) == ["a:a:1", "b:b:1", "c:c:1"]

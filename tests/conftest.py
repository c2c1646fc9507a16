"""Pytest configuration and shared fixtures for all tests."""

from datetime import datetime

import pytest

from graph_sbom._licenses import KnownLicenses
from graph_sbom.config import DocumentInfo

LICENSE_LIST = {
    "licenseListVersion": "3.21",
    "licenses": [
        {
            "licenseId": "Apache-2.0",
            "name": "Apache License 2.0",
            "seeAlso": [
                "https://www.apache.org/licenses/LICENSE-2.0",
                "https://opensource.org/licenses/Apache-2.0",
            ],
        },
        {
            "licenseId": "MIT",
            "name": "MIT License",
            "seeAlso": ["https://opensource.org/licenses/MIT"],
        },
        {
            "licenseId": "EPL-2.0",
            "name": "Eclipse Public License 2.0",
            "seeAlso": ["https://www.eclipse.org/legal/epl-2.0"],
        },
        {
            "licenseId": "GPL-2.0-only",
            "name": "GNU General Public License v2.0 only",
            "seeAlso": ["https://www.gnu.org/licenses/old-licenses/gpl-2.0-standalone.html"],
        },
        {
            "licenseId": "GPL-2.0-or-later",
            "name": "GNU General Public License v2.0 or later",
            "seeAlso": ["https://www.gnu.org/licenses/old-licenses/gpl-2.0-standalone.html"],
        },
    ],
}

CREATED = datetime(2024, 1, 2, 3, 4, 5)


@pytest.fixture
def license_list():
    """A small SPDX licenses.json table of contents."""
    return LICENSE_LIST


@pytest.fixture
def known_licenses(license_list):
    return KnownLicenses.from_license_list(license_list)


@pytest.fixture
def document_info():
    return DocumentInfo.from_options(
        name="test-document",
        namespace="https://example.com/spdx/test-document",
        creator="Organization: Example Inc",
        package_supplier="Organization: Example Inc",
    )


@pytest.fixture
def created():
    """Fixed creation timestamp for reproducible documents."""
    return CREATED


@pytest.fixture
def artifact_file(tmp_path):
    """Factory writing an artifact file with the given content."""

    def _write(name: str, content: bytes = b"artifact-bytes") -> str:
        path = tmp_path / "artifacts" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _write

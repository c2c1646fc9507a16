"""Download location and package URL synthesis for maven-style components."""

from typing import Optional
from urllib.parse import quote

from packageurl import PackageURL

from .models import ModuleComponentId

NOASSERTION = "NOASSERTION"

# Maven Central, the repository a bare maven purl implicitly refers to
MAVEN_CENTRAL_URL = "https://repo.maven.apache.org/maven2"
MAVEN_CENTRAL_ALIASES = {
    MAVEN_CENTRAL_URL,
    "https://repo1.maven.org/maven2",
    "https://repo.maven.org/maven2",
}

PURL_TYPE = "maven"
REPOSITORY_URL_QUALIFIER = "repository_url"


def _trim_trailing_slashes(uri: str) -> str:
    return uri.rstrip("/")


def _trim_scheme(uri: str) -> str:
    for prefix in ("https://", "http://"):
        if uri.startswith(prefix):
            return uri[len(prefix) :]
    return uri


def with_trailing_slash(repo_uri: str) -> str:
    """Return the base URI with exactly one trailing separator."""
    return _trim_trailing_slashes(repo_uri) + "/"


def module_path(module_id: ModuleComponentId, filename: str) -> str:
    """Repository-relative path of an artifact file."""
    return "/".join(
        [
            module_id.group.replace(".", "/"),
            module_id.name,
            module_id.version,
            quote(filename, safe=""),
        ]
    )


def to_download_location(repo_uri: str, module_id: ModuleComponentId, filename: str) -> str:
    """
    Compute the URL an artifact file can be downloaded from.

    Args:
        repo_uri: Base URI of the repository the component was resolved from
        module_id: Coordinates of the component
        filename: Name of the artifact file

    Returns:
        Absolute download URL, or the NOASSERTION sentinel unchanged
    """
    if repo_uri == NOASSERTION:
        return repo_uri
    return with_trailing_slash(repo_uri) + module_path(module_id, filename)


def is_maven_central(repo_uri: str) -> bool:
    return _trim_trailing_slashes(repo_uri) in MAVEN_CENTRAL_ALIASES


def to_purl(repo_uri: str, module_id: ModuleComponentId) -> str:
    """
    Build the package URL of a maven component.

    Components from a repository other than Maven Central carry a
    ``repository_url`` qualifier holding the scheme-less repository location.

    Args:
        repo_uri: Base URI of the repository the component was resolved from
        module_id: Coordinates of the component

    Returns:
        Package URL string, e.g. ``pkg:maven/com.test/test@1.0.0``
    """
    locator = PackageURL(
        type=PURL_TYPE,
        namespace=module_id.group,
        name=module_id.name,
        version=module_id.version,
    ).to_string()

    if repo_uri == NOASSERTION or is_maven_central(repo_uri):
        return locator

    repo = _trim_scheme(_trim_trailing_slashes(repo_uri))
    return f"{locator}?{REPOSITORY_URL_QUALIFIER}={quote(repo, safe='')}"


def resolve_locators(repo_uri: Optional[str], module_id: ModuleComponentId, filename: str) -> tuple[str, Optional[str]]:
    """Download location and purl for a component, tolerating an unknown repository.

    Returns:
        Tuple of (download location, purl or None when the repository is unknown)
    """
    if repo_uri is None:
        return NOASSERTION, None
    return to_download_location(repo_uri, module_id, filename), to_purl(repo_uri, module_id)

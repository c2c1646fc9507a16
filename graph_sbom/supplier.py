"""Package supplier inference from manifest organization and developer data."""

from typing import Optional

from ._manifest.models import DeveloperInfo, ManifestInfo

NOASSERTION_SUPPLIER = "Organization: NOASSERTION"


def _present(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _organization_supplier(manifest: ManifestInfo) -> Optional[str]:
    if manifest.organization is None:
        return None
    name = _present(manifest.organization.name)
    return f"Organization: {name}" if name else None


def _shared_developer_organization(manifest: ManifestInfo) -> Optional[str]:
    # A developer without an organization counts as a distinct value
    organizations = {_present(dev.organization) for dev in manifest.developers}
    if len(organizations) != 1:
        return None
    organization = organizations.pop()
    return f"Organization: {organization}" if organization else None


def _is_supplier_candidate(dev: DeveloperInfo) -> bool:
    if _present(dev.name):
        return True
    return bool(_present(dev.organization)) and not _present(dev.email)


def _developer_supplier(manifest: ManifestInfo) -> Optional[str]:
    candidate = next((dev for dev in manifest.developers if _is_supplier_candidate(dev)), None)
    if candidate is None:
        return None

    name = _present(candidate.name)
    email = _present(candidate.email)
    if name:
        return f"Person: {name} ({email})" if email else f"Person: {name}"
    return f"Organization: {_present(candidate.organization)}"


def build_package_supplier(manifest: ManifestInfo) -> str:
    """
    Infer an SPDX supplier string for an external component.

    Precedence, first match wins:
    1. The manifest organization name
    2. The organization shared by every developer
    3. The first developer with a name, or with an organization and no email
    4. ``Organization: NOASSERTION``

    Args:
        manifest: Parsed manifest of the component

    Returns:
        Supplier string in SPDX actor syntax
    """
    for strategy in (_organization_supplier, _shared_developer_organization, _developer_supplier):
        supplier = strategy(manifest)
        if supplier:
            return supplier
    return NOASSERTION_SUPPLIER

"""
SPDX document serialization.

The compiler only builds the in-memory model; this module hands it to the
spdx-tools writers. Validation is run separately (see ``validation``), so the
writers are always called with ``validate=False``.
"""

from pathlib import Path
from typing import Union

from spdx_tools.spdx.model import Document
from spdx_tools.spdx.writer.write_anything import write_file as spdx_write_file

from .logging_config import logger

DEFAULT_SPDX_VERSION = "2.3"

# Output formats spdx-tools picks from the file extension
SUPPORTED_EXTENSIONS = (".json", ".yaml", ".yml", ".xml", ".spdx", ".tag", ".rdf", ".rdf.xml")


def detect_spdx_version(document: Document) -> str:
    """
    Detect SPDX version from a document.

    Args:
        document: SPDX document object

    Returns:
        Version string (e.g., "2.3")
    """
    version_str = document.creation_info.spdx_version
    if version_str and version_str.startswith("SPDX-"):
        return version_str.replace("SPDX-", "")

    logger.debug(f"Could not detect SPDX version, defaulting to {DEFAULT_SPDX_VERSION}")
    return DEFAULT_SPDX_VERSION


def is_supported_output(path: Union[str, Path]) -> bool:
    """Whether spdx-tools can infer an output format from the file name."""
    return str(path).lower().endswith(SUPPORTED_EXTENSIONS)


def write_spdx_document(document: Document, output_file: Union[str, Path]) -> Path:
    """
    Write a document to disk, in the format implied by the file extension.

    Args:
        document: SPDX document object
        output_file: Destination path

    Returns:
        The path written to

    Raises:
        ValueError: If the extension maps to no SPDX output format
        PermissionError: If the file cannot be written due to permissions
        OSError: If the file cannot be written
    """
    output_path = Path(output_file)
    if not is_supported_output(output_path):
        raise ValueError(
            f"Unsupported output file extension for {output_path}, expected one of {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        spdx_write_file(document, str(output_path), validate=False)
    except PermissionError:
        raise PermissionError(f"Permission denied writing output file: {output_path}")
    except OSError as e:
        raise OSError(f"Error writing output file {output_path}: {e}")

    logger.info(f"SPDX {detect_spdx_version(document)} document written to: {output_path}")
    return output_path

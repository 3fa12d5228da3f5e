"""
Serialization of exported documents (connection exports, graph exports).

JSON output is deterministic (sorted keys, 2-space indent) so exporting the
same state twice yields byte-identical text. YAML uses PyYAML safe dump/load.
"""

import json
from typing import Any, Dict

import yaml

from ..domain.base_enums import ExportFormat
from ..domain.errors import BadRequestError
from ..utils.logging import get_module_logger


logger = get_module_logger()


def dump_document(document: Dict[str, Any], fmt: ExportFormat = ExportFormat.JSON) -> str:
    """
    Render a JSON-compatible dictionary as text.

    Args:
        document: Dictionary holding only JSON-compatible values
        fmt: Output format

    Returns:
        Serialized document
    """
    if fmt == ExportFormat.YAML:
        return yaml.safe_dump(document, sort_keys=True, default_flow_style=False, allow_unicode=True)
    return json.dumps(document, sort_keys=True, indent=2, ensure_ascii=False)


def load_document(text: str, fmt: ExportFormat = ExportFormat.JSON) -> Dict[str, Any]:
    """
    Parse a serialized document back into a dictionary.

    Raises:
        BadRequestError: If the text does not parse or is not a mapping
    """
    try:
        if fmt == ExportFormat.YAML:
            document = yaml.safe_load(text)
        else:
            document = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        logger.warning("Document parse failed", format=fmt.value, error=str(e))
        raise BadRequestError(f"Could not parse {fmt.value} document: {e}") from e

    if not isinstance(document, dict):
        raise BadRequestError(
            f"Expected a {fmt.value} object at the top level",
            details={"type": type(document).__name__},
        )
    return document

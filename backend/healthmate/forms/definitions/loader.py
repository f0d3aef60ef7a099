"""Form definition loader: reads the JSON rule sets shipped with the package.

Definitions are data, not code: each *.json file in this directory describes
one form (its field rules and submit policy) and is validated into a
FormDefinition when first loaded.
"""

import json
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from healthmate.forms.models import FormDefinition

logger = structlog.get_logger()

DEFINITIONS_DIR = Path(__file__).parent

# Cache loaded definitions to avoid re-reading from disk
_definition_cache: dict[str, FormDefinition] = {}


def _load_all_definitions() -> dict[str, FormDefinition]:
    """Load and cache all JSON form definitions from the definitions directory."""
    if _definition_cache:
        return _definition_cache

    for json_file in sorted(DEFINITIONS_DIR.glob("*.json")):
        try:
            data = json.loads(json_file.read_text(encoding="utf-8"))
            data.setdefault("form_id", json_file.stem)
            definition = FormDefinition.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("form_definition_invalid", file=json_file.name, error=str(e))
            continue
        _definition_cache[definition.form_id] = definition

    logger.debug("form_definitions_loaded", forms=sorted(_definition_cache))
    return _definition_cache


def load_form_definition(form_id: str) -> Optional[FormDefinition]:
    """Load a form definition by id.

    Args:
        form_id: Form identifier (e.g., "login", "register", "contact")

    Returns:
        FormDefinition, or None if no such form exists
    """
    return _load_all_definitions().get(form_id)


def get_all_form_ids() -> list[str]:
    """List all available form ids."""
    return list(_load_all_definitions().keys())

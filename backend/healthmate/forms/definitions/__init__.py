"""Form definitions used by the product: login, register and contact."""

from healthmate.forms.definitions.loader import load_form_definition, get_all_form_ids

__all__ = ["load_form_definition", "get_all_form_ids"]

# crudwizard/wizard_engine/core/config_hasher.py

import hashlib
import json

from crudwizard.wizard_engine.models import WizardConfig

# Identity and bookkeeping fields; everything else is content.
NON_CONTENT_FIELDS = {"config_id", "created_at", "updated_at", "config_hash"}


def canonicalize_config(config: WizardConfig) -> str:
    """
    Serializes the configuration's content to a stable JSON string.

    Keys are sorted at every level and separators are fixed, so the output
    only changes when the content does.
    """
    content = config.model_dump(mode="json", exclude=NON_CONTENT_FIELDS)
    return json.dumps(content, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def compute_config_hash(config: WizardConfig) -> str:
    """SHA-256 of the canonical form, as uppercase hex."""
    canonical = canonicalize_config(config)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest().upper()


def verify_config_hash(config: WizardConfig) -> bool:
    """True when the stored hash still matches the configuration's content."""
    return config.config_hash is not None and config.config_hash == compute_config_hash(config)


def is_unchanged(previous: WizardConfig, current: WizardConfig) -> bool:
    return compute_config_hash(previous) == compute_config_hash(current)

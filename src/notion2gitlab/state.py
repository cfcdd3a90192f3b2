"""Explicit application state with an opt-in save/restore pair.

Every helper takes a ``WizardState`` and returns an updated copy; nothing in
here writes to disk unless ``save_state`` is called.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError

from .core.logging import get_logger
from .models.wizard import FilterRule, ProcessingState, WizardState

logger = get_logger(__name__)


def save_state(state: WizardState, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(state.model_dump_json(indent=2), encoding="utf-8")
    return path


def load_state(path: Path) -> WizardState | None:
    """Restore a saved state; a missing or unreadable file yields ``None``."""

    if not path.exists():
        return None
    try:
        return WizardState.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError, ValidationError) as exc:
        logger.warning("state.load_failed", path=str(path), error=str(exc))
        return None


def reset_state(path: Path | None = None) -> WizardState:
    if path is not None and path.exists():
        path.unlink()
    return WizardState()


def add_filter_rule(state: WizardState, rule: FilterRule) -> WizardState:
    return state.model_copy(update={"filters": [*state.filters, rule]})


def update_filter_rule(state: WizardState, rule_id: str, **changes: object) -> WizardState:
    filters = [
        FilterRule.model_validate({**rule.model_dump(), **changes, "id": rule.id}) if rule.id == rule_id else rule
        for rule in state.filters
    ]
    return state.model_copy(update={"filters": filters})


def remove_filter_rule(state: WizardState, rule_id: str) -> WizardState:
    return state.model_copy(update={"filters": [rule for rule in state.filters if rule.id != rule_id]})


def with_processing(state: WizardState, processing: ProcessingState) -> WizardState:
    return state.model_copy(update={"processing": processing.model_copy(deep=True)})

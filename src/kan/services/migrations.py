"""Schema migration steps.

Each entity type has an ordered table of steps. A step covers a range of
source versions and either only bumps the stamp (``transform is None``) or
restructures the decoded document. Adding a version means appending a step.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..models.board import FieldType
from ..models.card import LEGACY_COLUMN_KEY
from ..models.version import CARD_VERSION_KEY

logger = logging.getLogger(__name__)

Transform = Callable[[dict[str, Any]], dict[str, Any]]

LABELS_FIELD = "labels"


@dataclass(frozen=True)
class MigrationStep:
    """Upgrade from any version in ``from_versions`` to ``to_version``."""

    from_versions: range
    to_version: int
    description: str
    transform: Transform | None = None

    @property
    def structural(self) -> bool:
        """Whether the step needs a full decode and re-encode."""
        return self.transform is not None


def labels_to_custom_field(data: dict[str, Any]) -> dict[str, Any]:
    """Convert ``[[labels]]`` into a ``labels`` custom field of type tags.

    Label names and colors become option values and colors, and a
    ``card_display.badges`` entry for the new field is added unless one is
    already there. Boards without labels pass through unchanged.
    """
    labels = data.pop(LABELS_FIELD, None)
    if not isinstance(labels, list) or not labels:
        return data

    options: list[dict[str, Any]] = []
    for label in labels:
        if not isinstance(label, dict) or not label.get("name"):
            logger.debug("Skipping label without a name: %r", label)
            continue
        option: dict[str, Any] = {"value": str(label["name"])}
        color = label.get("color")
        if isinstance(color, str) and color:
            option["color"] = color
        options.append(option)

    custom_fields = data.get("custom_fields")
    if not isinstance(custom_fields, dict):
        custom_fields = {}
    custom_fields[LABELS_FIELD] = {"type": FieldType.TAGS.value, "options": options}
    data["custom_fields"] = custom_fields

    card_display = data.get("card_display")
    if not isinstance(card_display, dict):
        card_display = {}
    badges = card_display.get("badges")
    if not isinstance(badges, list):
        badges = []
    if LABELS_FIELD not in badges:
        badges.append(LABELS_FIELD)
    card_display["badges"] = badges
    data["card_display"] = card_display
    return data


def drop_legacy_column(data: dict[str, Any]) -> dict[str, Any]:
    """Column membership lives on the board; cards no longer carry it."""
    data.pop(LEGACY_COLUMN_KEY, None)
    return data


BOARD_STEPS: list[MigrationStep] = [
    MigrationStep(
        range(0, 2),
        2,
        "convert [[labels]] to a tags custom field",
        labels_to_custom_field,
    ),
    MigrationStep(range(2, 3), 3, "pattern_hooks section is optional"),
]

GLOBAL_STEPS: list[MigrationStep] = [
    MigrationStep(range(0, 1), 1, "add schema stamp"),
]

PROJECT_STEPS: list[MigrationStep] = [
    MigrationStep(range(0, 1), 1, "add schema stamp"),
]

CARD_STEPS: list[MigrationStep] = [
    MigrationStep(range(0, 1), 1, "remove inline column", drop_legacy_column),
]


def steps_between(
    steps: list[MigrationStep], from_version: int, to_version: int
) -> list[MigrationStep]:
    """Steps that take an entity from ``from_version`` up to ``to_version``.

    Raises:
        ValueError: If the table has no step for an intermediate version.
    """
    chain: list[MigrationStep] = []
    version = from_version
    while version < to_version:
        step = next((s for s in steps if version in s.from_versions), None)
        if step is None:
            raise ValueError(f"no migration step from version {version}")
        chain.append(step)
        version = step.to_version
    return chain


def with_key_first(data: dict[str, Any], key: str, value: Any) -> dict[str, Any]:
    """Copy of ``data`` with ``key`` set and moved to the front."""
    result: dict[str, Any] = {key: value}
    for k, v in data.items():
        if k != key:
            result[k] = v
    return result


def migrate_card_data(
    data: dict[str, Any], from_version: int, to_version: int
) -> dict[str, Any]:
    """Bring a raw card object up to ``to_version``.

    The legacy column key is dropped even when the version is already
    current. ``_v`` is updated in place or added as the first key.
    """
    for step in steps_between(CARD_STEPS, from_version, to_version):
        if step.transform is not None:
            data = step.transform(data)
    data = drop_legacy_column(data)
    if CARD_VERSION_KEY in data:
        data[CARD_VERSION_KEY] = to_version
        return data
    return with_key_first(data, CARD_VERSION_KEY, to_version)

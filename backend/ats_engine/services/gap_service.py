import logging
from dataclasses import dataclass
from typing import Any, List, Literal, Mapping

from pydantic import ValidationError

from ats_engine.schemas.ats import ActionableFeedback, MissingKeyword, MissingSkill

logger = logging.getLogger(__name__)

GapKind = Literal["skill", "keyword"]

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
DEFAULT_PRIORITY = "medium"

_DEFAULT_CONTEXT = {
    "skill": "Identified as a relevant skill from job requirements",
    "keyword": "Identified as a relevant keyword from job description",
}


@dataclass
class GapReconciliation:
    flat: List[str]
    prioritized: List[MissingSkill] | List[MissingKeyword] | None = None


def is_prioritized(items: Any) -> bool:
    if not isinstance(items, list) or not items:
        return False
    first = items[0]
    return isinstance(first, Mapping) and "priority" in first


def _clean_name(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return " ".join(value.split())


def _entry_name(entry: Mapping[str, Any], kind: GapKind) -> str:
    for key in (kind, "name", "skill", "keyword"):
        name = _clean_name(entry.get(key))
        if name:
            return name
    return ""


def _normalize_priority(value: Any, name: str, warnings: List[str] | None) -> str:
    priority = value.strip().lower() if isinstance(value, str) else ""
    if priority in PRIORITY_ORDER:
        return priority
    message = f"unknown priority {value!r} for {name!r}, using {DEFAULT_PRIORITY}"
    logger.warning("Gap reconciliation: %s", message)
    if warnings is not None:
        warnings.append(message)
    return DEFAULT_PRIORITY


def to_prioritized(name: str, kind: GapKind, priority: str = DEFAULT_PRIORITY) -> MissingSkill | MissingKeyword:
    if kind == "skill":
        return MissingSkill(skill=name, priority=priority, context=_DEFAULT_CONTEXT["skill"])
    return MissingKeyword(keyword=name, priority=priority, context=_DEFAULT_CONTEXT["keyword"])


def reconcile_gaps(items: Any, kind: GapKind, warnings: List[str] | None = None) -> GapReconciliation:
    """Accept missing skills/keywords as plain strings or priority-tagged objects.

    The shape is decided by the first element: when it is an object carrying a
    ``priority``, the list is treated as prioritized and both the flat names and
    the tagged entries are returned. Otherwise only the flat names are.
    """
    if not isinstance(items, list):
        return GapReconciliation(flat=[])

    if not is_prioritized(items):
        names = [_entry_name(item, kind) if isinstance(item, Mapping) else _clean_name(item) for item in items]
        flat = [name for name in names if name]
        if len(flat) != len(items):
            message = f"{kind}: dropped {len(items) - len(flat)} entries without a name"
            logger.warning("Gap reconciliation: %s", message)
            if warnings is not None:
                warnings.append(message)
        return GapReconciliation(flat=flat)

    model = MissingSkill if kind == "skill" else MissingKeyword
    flat: List[str] = []
    prioritized: list = []
    for item in items:
        if isinstance(item, str):
            name = _clean_name(item)
            if name:
                flat.append(name)
                prioritized.append(to_prioritized(name, kind))
            continue
        if not isinstance(item, Mapping):
            continue

        name = _entry_name(item, kind)
        if not name:
            continue
        context = item.get("context")
        flat.append(name)
        prioritized.append(
            model(
                **{kind: name},
                priority=_normalize_priority(item.get("priority"), name, warnings),
                context=context if isinstance(context, str) else "",
            )
        )

    if len(flat) != len(items):
        message = f"{kind}: dropped {len(items) - len(flat)} entries without a name"
        logger.warning("Gap reconciliation: %s", message)
        if warnings is not None:
            warnings.append(message)
    return GapReconciliation(flat=flat, prioritized=prioritized)


def extract_actionable_feedback(items: Any, warnings: List[str] | None = None) -> List[ActionableFeedback] | None:
    if items is None:
        return None
    if not isinstance(items, list):
        if warnings is not None:
            warnings.append("actionableFeedback: expected a list")
        return None

    feedback: List[ActionableFeedback] = []
    for index, item in enumerate(items):
        try:
            feedback.append(ActionableFeedback.model_validate(item))
        except ValidationError as exc:
            if warnings is not None:
                warnings.append(f"actionableFeedback[{index}]: {exc.errors()[0]['msg']}")
    return feedback


def sort_feedback_by_priority(items: List[ActionableFeedback]) -> List[ActionableFeedback]:
    return sorted(items, key=lambda item: PRIORITY_ORDER.get(item.priority, len(PRIORITY_ORDER)))

"""Walker preferences and how they are flattened into the planner prompt."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import ConfigDict, Field, ValidationError

from camino.services.plan_schema import CamelModel

logger = logging.getLogger(__name__)

UnitSystem = Literal["km", "miles"]
RouteStyle = Literal["scenic", "balanced", "fast"]
BudgetTier = Literal["$", "$$", "$$$"]
AlbergueKind = Literal["municipal", "private", "parochial"]
DietaryOption = Literal["none", "vegetarian", "vegan", "gluten-free"]
LanguageOption = Literal[
    "english", "spanish", "french", "german", "italian", "portuguese", "chinese", "korean"
]


class CaminoPreferences(CamelModel):
    model_config = ConfigDict(extra="ignore")

    unit_system: UnitSystem = "km"
    route_style: RouteStyle = "balanced"
    target_stage_km: float = Field(default=22, gt=0, le=60)
    budget: BudgetTier = "$$"
    albergue_kinds: List[AlbergueKind] = Field(default_factory=lambda: ["municipal", "private", "parochial"])
    quiet_dorms_preferred: bool = True
    private_room_preferred: bool = False
    dietary: List[DietaryOption] = Field(default_factory=lambda: ["none"])
    language_help: List[LanguageOption] = Field(default_factory=lambda: ["english"])
    other_notes: str = ""


def load_preferences(raw: Any) -> Optional[CaminoPreferences]:
    """Merge client preferences over the defaults; malformed input falls back to defaults."""
    if raw is None:
        return None
    if not isinstance(raw, dict):
        logger.info("Ignoring non-object preferences payload")
        return CaminoPreferences()
    try:
        return CaminoPreferences.model_validate(raw)
    except ValidationError as exc:
        logger.info("Preferences failed validation, using defaults: %s", exc.error_count())
        return CaminoPreferences()


def preferences_to_instruction(prefs: CaminoPreferences) -> str:
    """Compact sentence for the system prompt."""
    unit_label = "miles" if prefs.unit_system == "miles" else "km"
    diet = [item for item in prefs.dietary if item != "none"]
    parts = [
        f"Use {prefs.unit_system}.",
        f"Favor {prefs.route_style} routing.",
        f"Aim for ~{prefs.target_stage_km:g} {unit_label} stages.",
        f"Budget {prefs.budget}.",
        f"Stays: {', '.join(prefs.albergue_kinds)}." if prefs.albergue_kinds else "",
        "Prefer quiet dorms." if prefs.quiet_dorms_preferred else "",
        "Prefer private rooms." if prefs.private_room_preferred else "",
        f"Dietary: {', '.join(diet)}." if diet else "",
        f"Language help: {' + '.join(prefs.language_help)}." if prefs.language_help else "",
        f"Other: {prefs.other_notes}" if prefs.other_notes else "",
    ]
    return " ".join(part for part in parts if part)


def preferences_prompt_block(prefs: Optional[CaminoPreferences]) -> str:
    if prefs is None:
        return "User Preferences: none provided"
    payload: Dict[str, Any] = prefs.to_wire()
    return (
        f"User Preferences:\n{json.dumps(payload, indent=2, ensure_ascii=False)}\n\n"
        f"In short: {preferences_to_instruction(prefs)}"
    )

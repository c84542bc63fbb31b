from __future__ import annotations
import logging
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from adventure_engine.errors import InvalidCombatInput
from adventure_engine.models.combatant import MobTemplate

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).parent


def load_toml(filepath: Path) -> dict[str, Any]:
    with open(filepath, "rb") as f:
        return tomllib.load(f)


def load_mobs_from(directory: Path) -> dict[str, MobTemplate]:
    """Load every mob from *.toml files in a directory.

    Each file holds a ``[[mobs]]`` array. Duplicate ids are rejected.
    """
    mobs: dict[str, MobTemplate] = {}
    for f in sorted(directory.glob("*.toml")):
        try:
            data = load_toml(f)
        except tomllib.TOMLDecodeError as exc:
            raise InvalidCombatInput(f"Mob file {f.name} is not valid TOML: {exc}") from exc
        for raw in data.get("mobs", []):
            try:
                mob = MobTemplate.model_validate(raw)
            except ValidationError as exc:
                raise InvalidCombatInput(f"Invalid mob in {f.name}: {exc}") from exc
            if mob.id in mobs:
                raise InvalidCombatInput(f"Duplicate mob id {mob.id!r} in {f.name}", field="id")
            mobs[mob.id] = mob
    logger.debug("Loaded %d mobs from %s", len(mobs), directory)
    return mobs


@lru_cache(maxsize=1)
def load_all_mobs() -> dict[str, MobTemplate]:
    return load_mobs_from(CONTENT_DIR / "mobs")


def get_mob(mob_id: str) -> MobTemplate:
    mobs = load_all_mobs()
    try:
        return mobs[mob_id]
    except KeyError:
        raise InvalidCombatInput(
            f"Unknown mob {mob_id!r}. Available: {', '.join(sorted(mobs))}", field="mob_id",
        ) from None

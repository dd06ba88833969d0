"""
Per-game table settings: validated models, a key-value store and a manager.

Settings are stored as camelCase JSON objects (``minBet``, ``maxBet``,
``startingChips`` ...) under a per-game key:

    blackjack  ->  'arcturus:blackjack:settings:<user_id>'
    baccarat   ->  'baccarat-settings'

Loading is forgiving: unknown keys and null values are ignored, a corrupt
or invalid stored object falls back to the defaults. Values are clamped
rather than rejected so that the engines always receive usable limits:

    min_bet >= 1, max_bet >= 1, starting_chips >= 0, min_bet <= max_bet

The engines never touch storage; the manager pushes limits into a game via
``apply_to()``.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, ClassVar, Generic, Literal, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

Speed = Literal['slow', 'normal', 'fast']

SPEED_DELAYS: dict[str, float] = {'slow': 1.5, 'normal': 1.0, 'fast': 0.5}

BLACKJACK_SETTINGS_KEY_PREFIX: str = 'arcturus:blackjack:settings:'
BACCARAT_SETTINGS_KEY: str = 'baccarat-settings'


# ─── Models ───────────────────────────────────────────────────────────────────

class _TableSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    speed_field: ClassVar[str]

    starting_chips: int = Field(1000, alias='startingChips')
    min_bet: int = Field(10, alias='minBet')
    max_bet: int = Field(1000, alias='maxBet')

    @model_validator(mode='before')
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator('min_bet', 'max_bet')
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        return max(1, v)

    @field_validator('starting_chips')
    @classmethod
    def _not_negative(cls, v: int) -> int:
        return max(0, v)

    @model_validator(mode='after')
    def _min_not_above_max(self):
        if self.min_bet > self.max_bet:
            self.min_bet = self.max_bet
        return self

    @property
    def speed(self) -> str:
        return getattr(self, self.speed_field)


class BlackjackSettings(_TableSettings):
    speed_field: ClassVar[str] = 'dealer_speed'

    dealer_speed: Speed = Field('normal', alias='dealerSpeed')
    use_llm: bool = Field(False, alias='useLLM')


class BaccaratSettings(_TableSettings):
    speed_field: ClassVar[str] = 'animation_speed'

    max_bet: int = Field(5000, alias='maxBet')
    animation_speed: Speed = Field('normal', alias='animationSpeed')
    llm_enabled: bool = Field(False, alias='llmEnabled')
    sound_enabled: bool = Field(True, alias='soundEnabled')


SettingsT = TypeVar('SettingsT', bound=_TableSettings)


# ─── Stores ───────────────────────────────────────────────────────────────────

class SettingsStore(Protocol):
    def load(self, key: str) -> dict | None: ...

    def save(self, key: str, data: dict) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySettingsStore:
    """Process-local store, for anonymous sessions and tests."""

    def __init__(self, initial: dict[str, dict] | None = None) -> None:
        self._data: dict[str, dict] = {k: dict(v) for k, v in (initial or {}).items()}

    def load(self, key: str) -> dict | None:
        data = self._data.get(key)
        return dict(data) if data is not None else None

    def save(self, key: str, data: dict) -> None:
        self._data[key] = dict(data)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileSettingsStore:
    """One JSON file per key under ``directory``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / (re.sub(r'[^A-Za-z0-9_.-]', '_', key) + '.json')

    def load(self, key: str) -> dict | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read settings %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            logger.error("Ignoring settings %s: expected a JSON object", path)
            return None
        return data

    def save(self, key: str, data: dict) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(json.dumps(data, indent=2), encoding='utf-8')

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# ─── Manager ──────────────────────────────────────────────────────────────────

class SettingsManager(Generic[SettingsT]):
    """Loads, updates and persists one table's settings.

    Args:
        store: Backing key-value store.
        model: Settings model class (BlackjackSettings or BaccaratSettings).
        key: Storage key.
    """

    def __init__(self, store: SettingsStore, model: type[SettingsT], key: str) -> None:
        self.store = store
        self.model = model
        self.key = key
        self._settings = self._load()

    def _load(self) -> SettingsT:
        stored = self.store.load(self.key)
        if stored is None:
            return self.model()
        try:
            return self.model.model_validate(stored)
        except ValidationError as exc:
            logger.error("Invalid stored settings under %r, using defaults: %s", self.key, exc)
            return self.model()

    def _save(self) -> None:
        try:
            self.store.save(self.key, self._settings.model_dump(by_alias=True))
        except OSError as exc:
            logger.error("Failed to save settings under %r: %s", self.key, exc)

    @property
    def settings(self) -> SettingsT:
        return self._settings.model_copy()

    def update(self, **changes: Any) -> SettingsT:
        """Merge ``changes`` (field names) into the settings and persist them.

        Raises:
            pydantic.ValidationError: If a value has the wrong type.
        """
        merged = {**self._settings.model_dump(), **changes}
        self._settings = self.model.model_validate(merged)
        self._save()
        return self.settings

    def toggle(self, field: str) -> bool:
        """Flip a boolean setting and return its new value."""
        current = getattr(self._settings, field)
        if not isinstance(current, bool):
            raise ValueError(f"{field!r} is not a boolean setting")
        self.update(**{field: not current})
        return not current

    def reset_to_defaults(self) -> SettingsT:
        self._settings = self.model()
        self._save()
        return self.settings

    def clear(self) -> None:
        """Forget the stored settings; the in-memory copy reverts to defaults."""
        self.store.delete(self.key)
        self._settings = self.model()

    def delay_seconds(self) -> float:
        """Animation / dealer delay for the configured speed."""
        return SPEED_DELAYS.get(self._settings.speed, SPEED_DELAYS['normal'])

    def apply_to(self, game: Any, *, reset_balance: bool = False) -> bool:
        """Push bet limits (and optionally starting chips) into a game.

        The balance is only touched when ``reset_balance`` is set, and the
        game itself refuses that outside the betting phase.

        Returns:
            False if a requested balance reset was refused, else True.
        """
        game.update_bet_limits(self._settings.min_bet, self._settings.max_bet)
        if reset_balance:
            return game.set_balance(self._settings.starting_chips)
        return True


def blackjack_settings(store: SettingsStore, user_id: str) -> SettingsManager[BlackjackSettings]:
    return SettingsManager(store, BlackjackSettings, BLACKJACK_SETTINGS_KEY_PREFIX + user_id)


def baccarat_settings(store: SettingsStore) -> SettingsManager[BaccaratSettings]:
    return SettingsManager(store, BaccaratSettings, BACCARAT_SETTINGS_KEY)

"""
Settings Store

Owns the user settings (text-processing prompt and voice parameters) and
persists them as a single JSON value in a key-value store.
"""

import json
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from regen.config import settings

from .errors import StorageError, ValidationError
from .models import UserSettings

if TYPE_CHECKING:
    from regen.db import KeyValueStore

logger = structlog.get_logger()


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _normalize_keys(data: Any) -> Any:
    """Convert snake_case keys to the camelCase form used on disk."""
    if isinstance(data, dict):
        return {_camel(str(k)): _normalize_keys(v) for k, v in data.items()}
    return data


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge override into a copy of base, recursing into nested dicts."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _drop_path(data: dict[str, Any], loc: tuple[Any, ...]) -> None:
    node: Any = data
    for part in loc[:-1]:
        if not isinstance(node, dict) or part not in node:
            return
        node = node[part]
    if isinstance(node, dict) and loc:
        node.pop(loc[-1], None)


class SettingsStore:
    """
    Explicitly owned settings holder.

    `load` and `save` are the only ways to change the settings. The in-memory
    copy is the source of truth for the running process; persistence is
    best-effort.

    Usage:
        store = SettingsStore(create_store())
        await store.load()
        await store.save(store.current.with_voice_id("bf_emma"))
    """

    def __init__(self, store: "KeyValueStore", key: str | None = None):
        self.store = store
        self.key = key or settings.settings_store_key
        self._current = UserSettings()

    @property
    def current(self) -> UserSettings:
        """Copy of the in-memory settings."""
        return self._current.model_copy(deep=True)

    async def load(self) -> UserSettings:
        """
        Load settings from storage.

        Missing or corrupt data yields the built-in defaults. Partially
        present data is merged field by field over the defaults; stored
        fields that fail validation are discarded individually.
        """
        try:
            raw = await self.store.get(self.key)
        except StorageError as e:
            logger.warning("Settings storage unavailable, using defaults", error=str(e))
            raw = None

        self._current = self._parse(raw)
        return self.current

    async def save(self, new_settings: UserSettings | dict[str, Any]) -> bool:
        """
        Replace the settings wholesale and persist them.

        Returns:
            True if the settings were written to storage, False if only the
            in-memory state was updated.
        """
        if isinstance(new_settings, dict):
            try:
                new_settings = UserSettings.model_validate(new_settings)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid settings: {e}") from e

        self._current = new_settings.model_copy(deep=True)

        try:
            await self.store.set(self.key, self._current.model_dump_json(by_alias=True))
        except StorageError as e:
            logger.warning("Failed to persist settings", key=self.key, error=str(e))
            return False

        logger.info("Settings saved", voice_id=self._current.voice.voice_id)
        return True

    def _parse(self, raw: str | None) -> UserSettings:
        if raw is None:
            return UserSettings()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Corrupt stored settings, using defaults", error=str(e))
            return UserSettings()

        if not isinstance(data, dict):
            logger.warning("Unexpected stored settings type, using defaults")
            return UserSettings()

        defaults = UserSettings().model_dump(by_alias=True)
        merged = _deep_merge(defaults, _normalize_keys(data))

        try:
            return UserSettings.model_validate(merged)
        except PydanticValidationError as e:
            for error in e.errors():
                logger.warning(
                    "Discarding invalid stored setting",
                    field=".".join(str(p) for p in error["loc"]),
                    error=error["msg"],
                )
                _drop_path(merged, tuple(error["loc"]))

        try:
            return UserSettings.model_validate(merged)
        except PydanticValidationError:
            logger.warning("Stored settings unusable, using defaults")
            return UserSettings()

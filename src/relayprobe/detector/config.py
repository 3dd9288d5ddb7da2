"""Detector configuration model."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_MAX_HISTORY = 100


class DetectorConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    endpoint: str = ""
    api_key: str = Field(default="", validation_alias=AliasChoices("api_key", "apiKey"))
    model: str = DEFAULT_MODEL
    # Minutes between automatic cycles, 0 disables the cadence.
    interval: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("interval", "intervalMinutes"),
    )
    max_history: int = Field(
        default=DEFAULT_MAX_HISTORY,
        validation_alias=AliasChoices("max_history", "maxHistory"),
    )
    save_raw_response: bool = Field(
        default=False,
        validation_alias=AliasChoices("save_raw_response", "saveRawResponse"),
    )

    @field_validator("endpoint", "api_key", "model")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("max_history")
    @classmethod
    def default_max_history(cls, v: int) -> int:
        if v <= 0:
            return DEFAULT_MAX_HISTORY
        return v

    def merged(self, update: DetectorConfig) -> DetectorConfig:
        """Apply only the fields that were set on `update`.

        An empty API key, or the masked form of the current one, keeps the
        current key, so a config read from the API can be posted back as is.
        """
        changes = update.model_dump(exclude_unset=True)
        api_key = changes.get("api_key")
        if api_key is not None and (not api_key or api_key == mask_secret(self.api_key)):
            del changes["api_key"]
        return self.model_copy(update=changes)

    def masked(self) -> dict:
        """Config as a dict with the API key masked, safe for logs and responses."""
        data = self.model_dump()
        data["api_key"] = mask_secret(self.api_key)
        return data


def mask_secret(value: str) -> str:
    raw = (value or "").strip()
    if not raw:
        return ""
    if len(raw) <= 8:
        return "***"
    return f"{raw[:4]}***{raw[-4:]}"

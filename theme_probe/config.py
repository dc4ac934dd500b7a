from __future__ import annotations

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    SHOPIFY_INTERNAL_API_TOKEN: str
    SHOPIFY_ADMIN_API_VERSION: str = "2026-01"
    SHOPIFY_REQUEST_TIMEOUT_SECONDS: float = 20.0

    SHOPIFY_APP_HANDLE: str | None = None
    THEME_APP_EXTENSION_UUID: str | None = None
    THEME_APP_BLOCK_HANDLES: str = "average-rating,product-reviews"

    PROBE_TEMPLATE_NAMES: str = "product"
    PROBE_TARGET_BLOCKS: str = "@app"
    PROBE_MAX_CONCURRENT_FETCHES: int = Field(default=4, ge=1)
    PROBE_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    PROBE_REQUIRE_PREVIEW: bool = False

    LOG_LEVEL: str = "INFO"

    @field_validator("PROBE_TEMPLATE_NAMES")
    @classmethod
    def validate_template_names(cls, value: str) -> str:
        names = _split_csv(value)
        if not names:
            raise ValueError("PROBE_TEMPLATE_NAMES must include at least one template name")
        return ",".join(names)

    @field_validator("PROBE_TARGET_BLOCKS", "THEME_APP_BLOCK_HANDLES")
    @classmethod
    def normalize_csv(cls, value: str) -> str:
        return ",".join(_split_csv(value))

    @model_validator(mode="after")
    def validate_extension_config(self) -> "Settings":
        if bool(self.SHOPIFY_APP_HANDLE) != bool(self.THEME_APP_EXTENSION_UUID):
            raise ValueError(
                "SHOPIFY_APP_HANDLE and THEME_APP_EXTENSION_UUID must be configured together"
            )
        return self

    @property
    def template_names(self) -> list[str]:
        return _split_csv(self.PROBE_TEMPLATE_NAMES)

    @property
    def template_keys(self) -> list[str]:
        return [f"templates/{name}.json" for name in self.template_names]

    @property
    def extension_block_types(self) -> list[str]:
        if not self.SHOPIFY_APP_HANDLE or not self.THEME_APP_EXTENSION_UUID:
            return []
        return [
            f"shopify://apps/{self.SHOPIFY_APP_HANDLE}/blocks/{handle}/{self.THEME_APP_EXTENSION_UUID}"
            for handle in _split_csv(self.THEME_APP_BLOCK_HANDLES)
        ]

    @property
    def target_blocks(self) -> list[str]:
        targets = _split_csv(self.PROBE_TARGET_BLOCKS)
        for block_type in self.extension_block_types:
            if block_type not in targets:
                targets.append(block_type)
        return targets

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()

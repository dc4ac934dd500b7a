from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from theme_probe.models import CapabilityReport, ThemeSummary


class ProbeThemeRequest(BaseModel):
    shopDomain: str = Field(min_length=1)
    accessToken: str = Field(min_length=1)
    targets: list[str] = Field(default_factory=list)

    @field_validator("targets")
    @classmethod
    def validate_targets(cls, value: list[str]) -> list[str]:
        cleaned = [target.strip() for target in value]
        if any(not target for target in cleaned):
            raise ValueError("targets cannot contain empty block types")
        return cleaned


class ThemeSummaryResponse(BaseModel):
    id: str
    name: str
    role: str

    @classmethod
    def from_theme(cls, theme: ThemeSummary) -> "ThemeSummaryResponse":
        return cls(id=theme.id, name=theme.name, role=theme.role)


class CapabilityReportResponse(BaseModel):
    theme: ThemeSummaryResponse | None
    supportsSectionsEverywhere: bool
    supportsAppBlocks: bool
    containsBlock: dict[str, bool] | None
    previewUrl: str | None

    @classmethod
    def from_report(cls, report: CapabilityReport) -> "CapabilityReportResponse":
        return cls(
            theme=ThemeSummaryResponse.from_theme(report.theme) if report.theme else None,
            supportsSectionsEverywhere=report.supports_sections_everywhere,
            supportsAppBlocks=report.supports_app_blocks,
            containsBlock=dict(report.contains_block) if report.contains_block is not None else None,
            previewUrl=report.preview_url,
        )

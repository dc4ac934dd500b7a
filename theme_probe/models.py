from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from theme_probe.errors import ThemeProbeError

MAIN_THEME_ROLE = "MAIN"

T = TypeVar("T")


@dataclass(frozen=True)
class ShopContext:
    shop_domain: str
    access_token: str


@dataclass(frozen=True)
class ThemeSummary:
    id: str
    name: str
    role: str

    @property
    def is_published(self) -> bool:
        return self.role.strip().upper() == MAIN_THEME_ROLE


@dataclass(frozen=True)
class Asset:
    key: str
    content: str | None = None


@dataclass(frozen=True)
class TemplateDocument:
    key: str
    main_section_type: str | None
    placed_block_types: tuple[str, ...] = ()


@dataclass(frozen=True)
class SchemaBlock:
    type: str


@dataclass(frozen=True)
class SectionSchema:
    blocks: tuple[SchemaBlock, ...] = ()
    source: str | None = None

    @property
    def block_types(self) -> tuple[str, ...]:
        return tuple(block.type for block in self.blocks)


@dataclass(frozen=True)
class PreviewItem:
    id: str
    title: str
    handle: str


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one fan-out unit: either a value or the error that replaced it."""

    key: str
    value: T | None = None
    error: ThemeProbeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CapabilityReport:
    theme: ThemeSummary | None
    supports_sections_everywhere: bool
    supports_app_blocks: bool
    contains_block: dict[str, bool] | None
    preview_url: str | None

    @classmethod
    def empty(cls, theme: ThemeSummary | None = None) -> "CapabilityReport":
        return cls(
            theme=theme,
            supports_sections_everywhere=False,
            supports_app_blocks=False,
            contains_block=None,
            preview_url=None,
        )


class ProbeStage(str, Enum):
    RESOLVING_THEME = "resolving_theme"
    FETCHING_TEMPLATES = "fetching_templates"
    PARSING_TEMPLATES = "parsing_templates"
    FETCHING_SECTIONS = "fetching_sections"
    EXTRACTING_SCHEMAS = "extracting_schemas"
    EVALUATING = "evaluating"
    RESOLVING_PREVIEW = "resolving_preview"
    DONE = "done"


class ProbeStatus(str, Enum):
    COMPLETED = "completed"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProbeIssue:
    stage: ProbeStage
    key: str | None
    error: str
    message: str


@dataclass(frozen=True)
class ProbeResult:
    status: ProbeStatus
    report: CapabilityReport | None = None
    issues: tuple[ProbeIssue, ...] = field(default_factory=tuple)
    error: ThemeProbeError | None = None

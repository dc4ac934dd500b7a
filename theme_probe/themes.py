from __future__ import annotations

import logging
from collections.abc import Sequence

from theme_probe.errors import NotFoundError
from theme_probe.models import ThemeSummary

logger = logging.getLogger(__name__)


def resolve_published(themes: Sequence[ThemeSummary]) -> ThemeSummary:
    matches = [theme for theme in themes if theme.is_published]
    if not matches:
        raise NotFoundError(message="No published (MAIN) theme found for this shop.")
    if len(matches) > 1:
        # First in listing order wins.
        logger.warning(
            "theme_probe.multiple_main_themes",
            extra={"theme_ids": [theme.id for theme in matches], "selected_theme_id": matches[0].id},
        )
    return matches[0]

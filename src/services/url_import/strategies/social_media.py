"""Instagram / TikTok posts: preview metadata only, never location."""

from __future__ import annotations

import logging

from ..confidence import build_result
from ..exceptions import PageFetchError
from ..interfaces import ExtractionContext
from ..models import Confidence, Draft, DraftField, ImportResult, ImportSignals
from ..page_parser import open_graph, parse_html
from ..provider_classifier import ProviderMatch


logger = logging.getLogger(__name__)

METHOD_SOCIAL = "social_opengraph"
DEFAULT_NAME = "Untitled Spot"
SOCIAL_WARNINGS = (
    "Social media URL detected - extracted data is unreliable",
    "Please manually verify all location details",
)


class SocialMediaStrategy:
    async def extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        preview: dict[str, str] = {}
        warnings = list(SOCIAL_WARNINGS)
        try:
            page = await context.fetcher.fetch(url)
        except PageFetchError as e:
            logger.warning("Social page fetch failed: %s", e.message)
            warnings.append("Could not load the post preview.")
        else:
            if page.ok and page.is_html:
                preview = open_graph(parse_html(page.text))

        title = preview.get("og:title")
        draft = Draft(
            name=title or DEFAULT_NAME,
            link=url,
            comments=preview.get("og:description"),
            photo_url=preview.get("og:image"),
        )
        return build_result(
            provider=match.provider,
            method=METHOD_SOCIAL,
            draft=draft,
            levels={DraftField.NAME: Confidence.LOW, DraftField.LINK: Confidence.HIGH},
            warnings=warnings,
            signals=ImportSignals(open_graph=preview),
            force_confirmation=True,
        )

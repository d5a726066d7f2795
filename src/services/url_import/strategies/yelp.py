"""Yelp business pages via the Yelp Fusion API."""

from __future__ import annotations

from ..confidence import build_result
from ..exceptions import ProviderConfigurationError
from ..interfaces import ExtractionContext
from ..models import Confidence, Draft, DraftField, ImportResult, ImportSignals, ProviderType
from ..provider_classifier import ProviderMatch
from ..yelp_client import category_from_yelp_titles


METHOD_YELP_API = "yelp_api"


class YelpStrategy:
    """Keyed reviews-site lookup; raises so the pipeline can fall back."""

    async def extract(
        self, url: str, match: ProviderMatch, context: ExtractionContext
    ) -> ImportResult:
        if context.yelp is None:
            raise ProviderConfigurationError("Yelp API key not configured (YELP_API_KEY)")
        if not match.identifier:
            raise ProviderConfigurationError("No Yelp business id found in the link")

        business = await context.yelp.get_business(match.identifier)

        comments = f"Imported from Yelp: {url}"
        if business.price:
            comments += f"\nPrice: {business.price}"

        draft = Draft(
            name=business.name,
            address=business.address,
            city=business.city,
            country=business.country,
            coordinates=business.coordinates,
            category=category_from_yelp_titles(business.category_titles),
            link=business.url or url,
            comments=comments,
            photo_url=business.image_url,
            opening_hours=business.opening_hours,
        )
        levels = {
            DraftField.NAME: Confidence.HIGH,
            DraftField.ADDRESS: Confidence.HIGH,
            DraftField.COORDINATES: Confidence.HIGH,
            DraftField.CITY: Confidence.HIGH,
            DraftField.COUNTRY: Confidence.HIGH,
            DraftField.CATEGORY: Confidence.MEDIUM,
            DraftField.LINK: Confidence.HIGH,
        }
        return build_result(
            provider=ProviderType.YELP,
            method=METHOD_YELP_API,
            draft=draft,
            levels=levels,
            signals=ImportSignals(yelp_categories=business.category_titles),
        )

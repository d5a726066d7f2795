"""Provider-specific extraction strategies."""

from .generic_website import GenericWebsiteStrategy
from .google_maps import GoogleMapsStrategy, GoogleMapsUrlOnlyStrategy
from .pinterest import PinterestStrategy
from .social_media import SocialMediaStrategy
from .yelp import YelpStrategy


__all__ = [
    "GenericWebsiteStrategy",
    "GoogleMapsStrategy",
    "GoogleMapsUrlOnlyStrategy",
    "PinterestStrategy",
    "SocialMediaStrategy",
    "YelpStrategy",
]

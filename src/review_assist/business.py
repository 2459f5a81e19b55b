"""Business profile and the per-platform links shown on the landing page."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import quote

from .config import Settings
from .models import LinkTarget, Platform
from .prompt import PLATFORM_POLICIES


def _encode(value: str) -> str:
    return quote(value, safe="")


@dataclass(frozen=True)
class BusinessInfo:
    name: str
    address: str
    google_place_id: Optional[str]
    yelp_business_id: str
    tripadvisor_id: str
    opentable_id: str
    google_maps_url: str
    yelp_url: str
    tripadvisor_url: str
    opentable_url: str

    @classmethod
    def from_settings(cls, settings: Settings) -> "BusinessInfo":
        name = settings.business_name
        return cls(
            name=name,
            address=settings.business_address,
            google_place_id=settings.default_place_id,
            yelp_business_id=settings.yelp_business_id,
            tripadvisor_id=settings.tripadvisor_id,
            opentable_id=settings.opentable_id,
            google_maps_url=settings.google_maps_url
            or f"https://maps.google.com/maps?q={_encode(name)}",
            yelp_url=settings.yelp_url
            or f"https://www.yelp.com/biz/{settings.yelp_business_id}",
            tripadvisor_url=settings.tripadvisor_url
            or f"https://www.tripadvisor.com/Search?q={_encode(name)}",
            opentable_url=settings.opentable_url
            or f"https://www.opentable.com/s?term={_encode(name)}",
        )

    def web_url(self, platform: Platform) -> str:
        return {
            Platform.GOOGLE_MAPS: self.google_maps_url,
            Platform.YELP: self.yelp_url,
            Platform.TRIPADVISOR: self.tripadvisor_url,
            Platform.OPENTABLE: self.opentable_url,
        }[platform]

    def link_target(self, platform: Platform) -> LinkTarget:
        """The landing-page button for a platform, carrying this business's ids."""
        return LinkTarget(
            href=self.web_url(platform),
            title=PLATFORM_POLICIES[platform.value].display_name,
            platform=platform.value,
            business_name=self.name,
            place_id=self.google_place_id,
        )


def deep_links(info: BusinessInfo) -> Dict[str, Dict[str, str]]:
    """App-scheme links per platform, with the web URL as the universal fallback."""
    return {
        Platform.GOOGLE_MAPS.value: {
            "ios": (
                f"comgooglemaps://?q={_encode(info.name)}"
                f"&center={_encode(info.address)}"
            ),
            "android": f"geo:0,0?q={_encode(info.name + ' ' + info.address)}",
            "web": info.google_maps_url,
        },
        Platform.YELP.value: {
            "ios": f"yelp:///biz/{info.yelp_business_id}",
            "android": f"yelp:///biz/{info.yelp_business_id}",
            "web": info.yelp_url,
        },
        Platform.TRIPADVISOR.value: {
            "ios": f"tripadvisor://restaurant/{info.tripadvisor_id}",
            "android": f"tripadvisor://restaurant/{info.tripadvisor_id}",
            "web": info.tripadvisor_url,
        },
        Platform.OPENTABLE.value: {
            "ios": f"opentable://restaurant/{info.opentable_id}",
            "android": f"opentable://restaurant/{info.opentable_id}",
            "web": info.opentable_url,
        },
    }

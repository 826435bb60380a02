"""Source adapters – one per source category.

* :class:`StaticHtmlAdapter` – academic sites and generic funding pages
* :class:`JsonApiAdapter`    – Grants.gov, NIH RePORTER and SAM.gov
* :class:`SocialAdapter`     – LinkedIn / Facebook, configured by a :class:`PlatformProfile`

:func:`create_adapter` picks the right one for a :class:`~funding_radar.models.SourceCategory`.
"""

from .json_api import JsonApiAdapter
from .registry import AdapterOptions, create_adapter, list_available
from .social import FACEBOOK, LINKEDIN, PlatformProfile, SocialAdapter
from .static_html import StaticHtmlAdapter

__all__ = [
    "AdapterOptions",
    "create_adapter",
    "list_available",
    "JsonApiAdapter",
    "PlatformProfile",
    "SocialAdapter",
    "StaticHtmlAdapter",
    "FACEBOOK",
    "LINKEDIN",
]

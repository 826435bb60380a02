"""
Adapter registry – maps a source category to the adapter that handles it.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..interfaces import SourceAdapter
from ..models import SourceCategory
from .json_api import JsonApiAdapter
from .social import FACEBOOK, LINKEDIN, SocialAdapter
from .static_html import StaticHtmlAdapter

logger = logging.getLogger(__name__)


@dataclass
class AdapterOptions:
    """Knobs shared by every adapter built for one run."""
    http_timeout: float = 15.0
    render_timeout: float = 30.0
    settle_delay: Optional[float] = None
    linkedin_api_key: Optional[str] = None
    facebook_api_key: Optional[str] = None
    sam_api_key: Optional[str] = None


AdapterBuilder = Callable[[AdapterOptions], SourceAdapter]

# Category → builder
_REGISTRY: Dict[SourceCategory, AdapterBuilder] = {
    SourceCategory.ACADEMIC_SITE: lambda o: StaticHtmlAdapter(timeout=o.http_timeout),
    SourceCategory.GENERIC_HTTP: lambda o: StaticHtmlAdapter(timeout=o.http_timeout),
    SourceCategory.GOVERNMENT_API: lambda o: JsonApiAdapter(
        timeout=o.http_timeout, sam_api_key=o.sam_api_key
    ),
    SourceCategory.SOCIAL_LINKEDIN: lambda o: SocialAdapter(
        LINKEDIN,
        timeout=o.render_timeout,
        settle_delay=o.settle_delay,
        fallback_credential=o.linkedin_api_key,
    ),
    SourceCategory.SOCIAL_FACEBOOK: lambda o: SocialAdapter(
        FACEBOOK,
        timeout=o.render_timeout,
        settle_delay=o.settle_delay,
        fallback_credential=o.facebook_api_key,
    ),
}


def create_adapter(category: SourceCategory, options: Optional[AdapterOptions] = None) -> SourceAdapter:
    """Build a fresh adapter for *category*.

    Raises:
        KeyError: If no adapter is registered for the category
    """
    category = SourceCategory(category)
    if category not in _REGISTRY:
        available = [c.value for c in _REGISTRY]
        raise KeyError(f"No adapter for category '{category.value}'. Available: {available}")

    adapter = _REGISTRY[category](options or AdapterOptions())
    logger.debug(f"Created {adapter.name} for {category.value}")
    return adapter


def list_available() -> Dict[SourceCategory, AdapterBuilder]:
    """Get a copy of the category registry."""
    return _REGISTRY.copy()

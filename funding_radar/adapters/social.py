"""
Social-platform adapter – LinkedIn and Facebook feeds.

Both platforms share one adapter configured by a :class:`PlatformProfile`.
With a real credential the platform API is used; otherwise the public page is
rendered headlessly and post-like nodes are read from the DOM.  A login wall
ends the fetch with an "authentication required" error, it is never worked
around.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..errors import AuthRequiredError, FundingRadarError, ParseError
from ..extraction import extract_funding_info, extract_institution
from ..infra.http import HttpClient
from ..interfaces import SourceAdapter
from ..models import CandidateOpportunity, FetchResult, Source, SourceCategory

logger = logging.getLogger(__name__)

__all__ = ["PlatformProfile", "SocialAdapter", "LINKEDIN", "FACEBOOK", "parse_post"]

POST_KEYWORDS = (
    "scholarship", "funding", "phd", "fellowship", "grant",
    "position", "opportunity", "apply", "deadline",
)
MAX_POSTS = 10
TITLE_EXCERPT = 100
UNKNOWN_INSTITUTION = "Institution Not Specified"


@dataclass(frozen=True)
class PlatformProfile:
    """Everything that differs between two social platforms."""
    platform: str
    display_name: str
    credential_env: str
    placeholder_tokens: FrozenSet[str]
    auth_wall_selectors: Tuple[str, ...]
    post_selector: str
    content_selectors: Tuple[str, ...]
    author_selectors: Tuple[str, ...]
    time_selector: str
    time_attribute: str
    link_selectors: Tuple[str, ...]
    settle_delay: float = 3.0
    api_base: str = ""
    api_headers: Dict[str, str] = field(default_factory=dict)


LINKEDIN = PlatformProfile(
    platform="linkedin",
    display_name="LinkedIn",
    credential_env="LINKEDIN_API_KEY",
    placeholder_tokens=frozenset({"", "encrypted_linkedin_api_key", "your_api_key", "changeme"}),
    auth_wall_selectors=(".authwall", "form.login__form", "[data-test-id='authwall']"),
    post_selector='[data-id*="urn:li:activity"], .feed-shared-update-v2, .artdeco-card',
    content_selectors=(".feed-shared-text", ".feed-shared-update-v2__commentary"),
    author_selectors=(".feed-shared-actor__name", ".update-components-actor__name"),
    time_selector="time, .feed-shared-actor__sub-description",
    time_attribute="datetime",
    link_selectors=('a[href*="/posts/"]', 'a[href*="/feed/update/"]'),
    settle_delay=3.0,
    api_base="https://api.linkedin.com/rest/posts",
    api_headers={"LinkedIn-Version": "202401", "X-Restli-Protocol-Version": "2.0.0"},
)

FACEBOOK = PlatformProfile(
    platform="facebook",
    display_name="Facebook",
    credential_env="FACEBOOK_API_KEY",
    placeholder_tokens=frozenset({"", "encrypted_facebook_api_key", "your_api_key", "changeme"}),
    auth_wall_selectors=('[data-testid="royal_login_form"]', "#login_form"),
    post_selector='[data-pagelet*="FeedUnit"], [role="article"]',
    content_selectors=(
        '[data-ad-preview="message"]',
        'div[data-ad-comet-preview="message"]',
        'div[dir="auto"]',
    ),
    author_selectors=("strong a", "h3 a"),
    time_selector='[data-testid="story-subtitle"] a',
    time_attribute="aria-label",
    link_selectors=('[data-testid="story-subtitle"] a',),
    settle_delay=5.0,
    api_base="https://graph.facebook.com/v18.0",
)

PROFILES = {
    SourceCategory.SOCIAL_LINKEDIN: LINKEDIN,
    SourceCategory.SOCIAL_FACEBOOK: FACEBOOK,
}


# --------------------------------------------------------------------------- #
# DOM extraction script (runs inside the page)
# --------------------------------------------------------------------------- #
_EXTRACT_JS = """
() => {
  const cfg = %(config)s;
  const firstMatch = (root, selectors) => {
    for (const sel of selectors) {
      const el = root.querySelector(sel);
      if (el) return el;
    }
    return null;
  };
  const keywords = new RegExp(cfg.keywords.join('|'), 'i');
  const posts = [];
  for (const node of document.querySelectorAll(cfg.postSelector)) {
    const rawText = node.textContent || '';
    if (!keywords.test(rawText)) continue;
    const content = firstMatch(node, cfg.contentSelectors);
    const author = firstMatch(node, cfg.authorSelectors);
    const time = node.querySelector(cfg.timeSelector);
    const link = firstMatch(node, cfg.linkSelectors);
    posts.push({
      content: (content && content.textContent ? content.textContent.trim() : rawText.slice(0, 500)),
      author: (author && author.textContent ? author.textContent.trim() : 'Unknown'),
      timestamp: time ? (time.getAttribute(cfg.timeAttribute) || time.textContent || '') : '',
      post_url: link ? (link.getAttribute('href') || '') : '',
      raw_text: rawText,
    });
    if (posts.length >= cfg.limit) break;
  }
  return posts;
}
"""


def build_extract_script(profile: PlatformProfile, limit: int = MAX_POSTS) -> str:
    config = {
        "keywords": list(POST_KEYWORDS),
        "postSelector": profile.post_selector,
        "contentSelectors": list(profile.content_selectors),
        "authorSelectors": list(profile.author_selectors),
        "timeSelector": profile.time_selector,
        "timeAttribute": profile.time_attribute,
        "linkSelectors": list(profile.link_selectors),
        "limit": limit,
    }
    return _EXTRACT_JS % {"config": json.dumps(config)}


# --------------------------------------------------------------------------- #
# Post → candidate
# --------------------------------------------------------------------------- #
def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        # LinkedIn reports epoch milliseconds
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = str(value).strip()
    # Graph API uses +0000 offsets
    text = re.sub(r"([+-]\d{2})(\d{2})$", r"\1:\2", text.replace("Z", "+00:00"))
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _absolute(url: str, base: str) -> str:
    if not url or url.startswith("http"):
        return url
    match = re.match(r"https?://[^/]+", base)
    return f"{match.group(0)}{url}" if match and url.startswith("/") else url


def parse_post(post: Dict[str, Any], source: Source, profile: PlatformProfile) -> Optional[CandidateOpportunity]:
    """Turn one normalised post dict into a candidate, or ``None`` if the post
    is not about funding."""
    content = (post.get("content") or "").strip()
    raw_text = post.get("raw_text") or content
    if not content or not any(k in content.lower() for k in POST_KEYWORDS):
        return None

    lines = [line.strip() for line in content.splitlines() if line.strip()]
    title = lines[0][:TITLE_EXCERPT] if lines else f"{profile.display_name} Funding Opportunity"

    return CandidateOpportunity(
        title=title,
        description=content,
        institution=extract_institution(raw_text) or UNKNOWN_INSTITUTION,
        source_url=_absolute(post.get("post_url") or "", source.url) or source.url,
        source_name=profile.display_name,
        original_post=content,
        professor_name=post.get("author") or "Unknown",
        professor_profile=source.url,
        post_date=_parse_timestamp(post.get("timestamp")),
        social_platform=profile.platform,
        **extract_funding_info(raw_text),
    )


# --------------------------------------------------------------------------- #
class SocialAdapter(SourceAdapter):
    """API first when a real token is available, headless rendering otherwise."""

    def __init__(
        self,
        profile: PlatformProfile,
        *,
        http: Optional[HttpClient] = None,
        renderer: Any = None,
        timeout: float = 30.0,
        settle_delay: Optional[float] = None,
        fallback_credential: Optional[str] = None,
    ) -> None:
        self.profile = profile
        self._timeout = timeout
        self._settle_delay = profile.settle_delay if settle_delay is None else settle_delay
        self._http = http or HttpClient(timeout=timeout)
        self._renderer = renderer
        self._fallback_credential = (
            fallback_credential if fallback_credential is not None else os.getenv(profile.credential_env)
        )

    @property
    def name(self) -> str:
        return f"SocialAdapter[{self.profile.platform}]"

    async def close(self) -> None:
        await self._http.close()

    # ------------------------------------------------------------------- #
    def _usable_credential(self, source: Source) -> Optional[str]:
        token = source.credential or self._fallback_credential
        if not token or token.strip().lower() in self.profile.placeholder_tokens:
            return None
        return token.strip()

    async def fetch(self, source: Source) -> FetchResult:
        token = self._usable_credential(source)
        try:
            if token:
                posts = await self._fetch_via_api(source, token)
            else:
                posts = await self._fetch_via_browser(source)
        except FundingRadarError as e:
            logger.warning("%s: %s fetch failed: %s", source.name, self.profile.display_name, e)
            return FetchResult.failure(str(e))

        result = FetchResult()
        for post in posts[:MAX_POSTS]:
            try:
                candidate = parse_post(post, source, self.profile)
            except Exception as e:  # noqa: BLE001
                result.item_errors.append(f"Error parsing {self.profile.display_name} post: {e}")
                continue
            if candidate is not None:
                result.candidates.append(candidate)

        logger.info(
            "%s: %d post(s) seen, %d candidate(s) via %s",
            source.name,
            len(posts),
            len(result.candidates),
            "API" if token else "browser",
        )
        return result

    # ------------------------------------------------------------------- #
    # Headless rendering
    async def _fetch_via_browser(self, source: Source) -> List[Dict[str, Any]]:
        script = build_extract_script(self.profile)
        if self._renderer is not None:
            rendered = await self._render(self._renderer, source, script)
        else:
            from ..infra.browser import PlaywrightClient

            async with PlaywrightClient(timeout=self._timeout * 1000) as pw:
                rendered = await self._render(pw, source, script)

        if rendered.auth_wall:
            raise AuthRequiredError(
                f"{self.profile.display_name} requires authentication - add valid API credentials"
            )
        if not isinstance(rendered.data, list):
            raise ParseError(f"Unexpected {self.profile.display_name} page structure")
        return [p for p in rendered.data if isinstance(p, dict)]

    async def _render(self, renderer: Any, source: Source, script: str):
        return await renderer.extract(
            source.url,
            script,
            auth_wall_selectors=self.profile.auth_wall_selectors,
            settle_delay=self._settle_delay,
        )

    # ------------------------------------------------------------------- #
    # Platform APIs
    async def _fetch_via_api(self, source: Source, token: str) -> List[Dict[str, Any]]:
        if self.profile.platform == "facebook":
            return await self._facebook_posts(source, token)
        if self.profile.platform == "linkedin":
            return await self._linkedin_posts(source, token)
        raise ParseError(f"No API client for platform {self.profile.platform!r}")

    @staticmethod
    def facebook_page_id(url: str) -> Optional[str]:
        for pattern in (
            r"facebook\.com/groups/([^/?#]+)",
            r"facebook\.com/(?:pages/[^/?#]+/)?(\d+)",
            r"facebook\.com/(?:pages/)?([^/?#]+)",
        ):
            match = re.search(pattern, url)
            if match:
                return match.group(1)
        return None

    async def _facebook_posts(self, source: Source, token: str) -> List[Dict[str, Any]]:
        page_id = self.facebook_page_id(source.url)
        if not page_id:
            raise ParseError("Unable to extract Facebook page/group ID from URL")

        payload = await self._http.get_json(
            f"{self.profile.api_base}/{page_id}/posts",
            params={
                "access_token": token,
                "fields": "message,created_time,permalink_url,from",
                "limit": 20,
            },
        )
        if not isinstance(payload, dict):
            raise ParseError("Unexpected Facebook API response")
        if payload.get("error"):
            message = (payload["error"] or {}).get("message", "unknown error")
            raise AuthRequiredError(f"Facebook API error: {message}")

        return [
            {
                "content": post.get("message") or "",
                "author": (post.get("from") or {}).get("name") or "Unknown",
                "timestamp": post.get("created_time"),
                "post_url": post.get("permalink_url") or "",
                "raw_text": post.get("message") or "",
            }
            for post in payload.get("data") or []
            if isinstance(post, dict) and post.get("message")
        ]

    @staticmethod
    def linkedin_author_urn(url: str) -> Optional[str]:
        match = re.search(r"(urn:li:(?:person|organization):[\w-]+)", url)
        if match:
            return match.group(1)
        match = re.search(r"linkedin\.com/company/(\d+)", url)
        if match:
            return f"urn:li:organization:{match.group(1)}"
        return None

    async def _linkedin_posts(self, source: Source, token: str) -> List[Dict[str, Any]]:
        author = self.linkedin_author_urn(source.url)
        if not author:
            raise ParseError("Unable to derive LinkedIn author URN from URL")

        payload = await self._http.get_json(
            self.profile.api_base,
            params={"q": "author", "author": author, "count": 20},
            headers={"Authorization": f"Bearer {token}", **self.profile.api_headers},
        )
        if not isinstance(payload, dict):
            raise ParseError("Unexpected LinkedIn API response")

        posts = []
        for element in payload.get("elements") or []:
            if not isinstance(element, dict) or not element.get("commentary"):
                continue
            post_id = element.get("id") or ""
            posts.append({
                "content": element["commentary"],
                "author": source.name,
                "timestamp": element.get("createdAt") or element.get("publishedAt"),
                "post_url": f"https://www.linkedin.com/feed/update/{post_id}" if post_id else "",
                "raw_text": element["commentary"],
            })
        return posts

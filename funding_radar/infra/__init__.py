"""
Infrastructure: HTTP client, headless browser, scheduler and SQLite wrapper.

The browser module is imported on demand so that Playwright is only loaded
when a source actually needs rendering.
"""

from .db import Database
from .http import BROWSER_HEADERS, HttpClient
from .scheduler import Scheduler

__all__ = ["BROWSER_HEADERS", "Database", "HttpClient", "Scheduler"]

"""
Browser configuration for Playwright-based rendering.

This module provides a validated Pydantic configuration model for the
browser used to render JavaScript pages and to measure page speed.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from seoaudit.constants import RENDER_IDLE_TIMEOUT_MS


class BrowserConfig(BaseModel):
    """
    Configuration for the Playwright-based BrowserCrawler.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """
    model_config = ConfigDict(validate_assignment=True)

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use for rendering"
    )

    timeout: int = Field(
        default=30000,
        description="Page load timeout in milliseconds",
        ge=1000,
        le=300000
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="load",
        description="When to consider navigation complete"
    )

    idle_timeout: int = Field(
        default=RENDER_IDLE_TIMEOUT_MS,
        description="Upper bound in milliseconds on waiting for network idle after load",
        ge=0,
        le=300000
    )

    user_agent: Optional[str] = Field(
        default=None,
        description="Custom user agent. None keeps the browser default."
    )

    launch_args: List[str] = Field(
        default_factory=list,
        description="Additional browser launch arguments (e.g., '--disable-http2')"
    )


DEFAULT_BROWSER_CONFIG = BrowserConfig()
"""
Headless chromium, waits for the load event and then up to 10 seconds
for the network to go idle.
"""

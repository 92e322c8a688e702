"""
Browser Renderer
================
Headless Chromium rendering for pages whose static HTML is empty or
client-rendered, including simulated in-app navigation to SPA views.

Two navigation strategies:

- **Direct**: load the URL; if the server answers with an error status for a
  deep path, load the root and push the path through the History API so the
  client router mounts it.
- **SPA view**: load the root, capture the main region's text, click the
  control labelled with the view's label (or rewrite history to
  ``/<viewId>``) and wait for the main text to change.

Each ``render`` call owns its own browser process, released on every exit
path. All waits go through ``poll_until``; a wait that times out is
tolerated and the current DOM is returned.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol
from urllib.parse import urlparse

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from .errors import RenderFailure
from .run_config import CrawlConfig, SpaView
from .utils import URLNormalizer, poll_until, spa_view_id

logger = logging.getLogger(__name__)

# Minimum visible characters for a view to count as mounted
MOUNTED_TEXT_CHARS = 40

# Budget for the settle wait after a plain successful navigation
SETTLE_TIMEOUT_MS = 5000

_POLL_INTERVAL_MS = 100

_LAUNCH_ARGS = ['--no-sandbox', '--disable-setuid-sandbox', '--disable-dev-shm-usage']

# ---------------------------------------------------------------------------
# In-page scripts
# ---------------------------------------------------------------------------

_MAIN_TEXT_JS = """
(selector) => {
    const main = document.querySelector(selector);
    if (main) return main.innerText || '';
    return document.body ? (document.body.innerText || '') : '';
}
"""

_HAS_MAIN_JS = "(selector) => document.querySelector(selector) !== null"

_BODY_TEXT_JS = "() => document.body ? (document.body.innerText || '') : ''"

_LOCATION_PATH_JS = "() => window.location.pathname"

_CLICK_CONTROL_JS = """
([selector, label]) => {
    const target = (label || '').trim().toLowerCase();
    const controls = Array.from(document.querySelectorAll(selector));
    const match = controls.find(
        (el) => (el.textContent || '').trim().toLowerCase() === target
    );
    if (match) {
        match.click();
        return true;
    }
    return false;
}
"""

_PUSH_HISTORY_JS = """
(path) => {
    window.history.pushState({}, '', path);
    window.dispatchEvent(new PopStateEvent('popstate'));
}
"""

_REPLACE_HISTORY_JS = """
(path) => {
    window.history.replaceState({}, '', path);
    window.dispatchEvent(new PopStateEvent('popstate'));
}
"""


class Renderer(Protocol):
    """Anything that can turn a URL into rendered HTML."""

    async def render(self, url: str) -> Optional[str]:
        ...


class NullRenderer:
    """Renderer used when browser rendering is disabled or unavailable."""

    async def render(self, url: str) -> Optional[str]:
        return None


class PlaywrightRenderer:
    """
    Renders pages with a fresh headless Chromium per call.

    Usage::

        renderer = PlaywrightRenderer(config)
        html = await renderer.render("https://example.com/pricing")
    """

    def __init__(self, config: CrawlConfig):
        self.config = config
        self.url_normalizer = URLNormalizer()
        self._available = True
        self.renders = 0

    @property
    def available(self) -> bool:
        return self._available

    async def render(self, url: str) -> Optional[str]:
        """
        Render ``url`` and return the final DOM as HTML.

        Returns:
            HTML string, or None if rendering failed or is unavailable
        """
        if not self._available:
            return None

        logger.info(f"[RENDER] Rendering {url} via headless Chromium...")
        try:
            async with async_playwright() as playwright:
                browser = await self._launch(playwright)
                if browser is None:
                    return None
                try:
                    html = await self._render_in_browser(browser, url)
                finally:
                    await browser.close()
        except (RenderFailure, PlaywrightError) as e:
            logger.warning(f"Browser rendering failed for {url}: {e}")
            return None

        self.renders += 1
        return html

    async def _launch(self, playwright: Playwright) -> Optional[Browser]:
        """Launch Chromium; disable rendering for the run if it is not installed."""
        try:
            return await playwright.chromium.launch(headless=True, args=_LAUNCH_ARGS)
        except PlaywrightError as e:
            if "Executable doesn't exist" not in str(e):
                raise
            self._available = False
            logger.warning(
                "Chromium is not installed; continuing with static fetching only. "
                "Run `playwright install chromium` to enable JS rendering."
            )
            return None

    async def _render_in_browser(self, browser: Browser, url: str) -> str:
        context = await browser.new_context(user_agent=self.config.user_agent)
        page = await context.new_page()

        view_id = spa_view_id(url)
        view = self.config.spa_view_map.get(view_id) if view_id else None

        if view is not None:
            await self.simulate_spa_view(page, view)
        else:
            await self.navigate_direct(page, url)
        return await page.content()

    # ------------------------------------------------------------------
    # Navigation strategies
    # ------------------------------------------------------------------

    async def navigate_direct(self, page: Page, url: str) -> bool:
        """
        Load ``url`` directly, falling back to a client-side history push.

        Returns:
            True if the expected content was observed before the timeout
        """
        response = await self._goto(page, url)
        if response is None:
            raise RenderFailure(f"No response from {url}")

        path = urlparse(url).path or '/'
        if response.status >= 400 and path != '/':
            logger.info(
                f"[RENDER] HTTP {response.status} for {url}; "
                f"replaying {path} through the client router"
            )
            await self._goto(page, self._root_url(url))
            await page.evaluate(_PUSH_HISTORY_JS, path)

            async def routed() -> bool:
                current = await page.evaluate(_LOCATION_PATH_JS)
                text = await self._main_text(page)
                return current == path and len(text.strip()) > MOUNTED_TEXT_CHARS

            mounted = await self._poll(routed, self.config.browser_timeout_ms)
        else:
            async def settled() -> bool:
                text = await page.evaluate(_BODY_TEXT_JS)
                return len(text.strip()) > MOUNTED_TEXT_CHARS

            mounted = await self._poll(settled, SETTLE_TIMEOUT_MS)

        if not mounted:
            logger.debug(f"[RENDER] Content did not settle for {url}; using current DOM")
        return mounted

    async def simulate_spa_view(self, page: Page, view: SpaView) -> bool:
        """
        Reach a client-only view from the root page.

        Returns:
            True if the main region changed to the new view before the timeout
        """
        await self._goto(page, f"{self.config.origin}/")

        selector = self.config.spa_nav_selector

        async def nav_ready() -> bool:
            return await page.query_selector(selector) is not None

        if not await self._poll(nav_ready, self.config.browser_timeout_ms):
            logger.debug(f"[SPA] Navigation selector '{selector}' never appeared")

        baseline = (await self._main_text(page)).strip()

        clicked = False
        if view.label:
            clicked = await page.evaluate(
                _CLICK_CONTROL_JS, [self.config.control_selector, view.label]
            )
        if clicked:
            logger.info(f"[SPA] Clicked '{view.label}' to open view '{view.id}'")
        else:
            logger.info(f"[SPA] No control labelled '{view.label}'; rewriting history to /{view.id}")
            await page.evaluate(_REPLACE_HISTORY_JS, f"/{view.id}")

        main_selector = self.config.main_selector

        async def view_mounted() -> bool:
            if not await page.evaluate(_HAS_MAIN_JS, main_selector):
                return False
            current = (await self._main_text(page)).strip()
            return len(current) > MOUNTED_TEXT_CHARS and current != baseline

        mounted = await self._poll(view_mounted, self.config.browser_timeout_ms)
        if not mounted:
            logger.debug(f"[SPA] View '{view.id}' did not mount in time; using current DOM")
        return mounted

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _goto(self, page: Page, url: str):
        return await page.goto(
            url,
            wait_until='networkidle',
            timeout=self.config.browser_timeout_ms,
        )

    async def _main_text(self, page: Page) -> str:
        return await page.evaluate(_MAIN_TEXT_JS, self.config.main_selector) or ''

    async def _poll(self, predicate, timeout_ms: float) -> bool:
        # Navigation can destroy the execution context mid-evaluate
        return await poll_until(
            predicate,
            timeout_ms,
            interval_ms=_POLL_INTERVAL_MS,
            ignore=(PlaywrightError,),
        )

    def _root_url(self, url: str) -> str:
        return f"{self.url_normalizer.origin(url)}/"


def create_renderer(config: CrawlConfig) -> Renderer:
    """Pick the renderer for a run."""
    if not config.render_with_browser:
        logger.info("Browser rendering disabled; static fetching only")
        return NullRenderer()
    return PlaywrightRenderer(config)

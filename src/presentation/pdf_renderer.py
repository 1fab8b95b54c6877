from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from taskagent.errors import RemoteCallFailed

logger = logging.getLogger(__name__)


class PdfRenderer(ABC):
    @abstractmethod
    async def render(self, html: str, path: Path) -> None:
        """Write a PDF of `html` to `path` or raise RemoteCallFailed."""
        raise NotImplementedError


class PlaywrightPdfRenderer(PdfRenderer):
    """Headless Chromium via Playwright: A4, backgrounds printed, 1cm margins."""

    async def render(self, html: str, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=True)
                try:
                    page = await browser.new_page()
                    await page.set_content(html)
                    await page.pdf(
                        path=str(path),
                        format="A4",
                        print_background=True,
                        margin={"top": "1cm", "right": "1cm", "bottom": "1cm", "left": "1cm"},
                    )
                finally:
                    await browser.close()
        except PlaywrightError as e:
            logger.error(f"PDF rendering failed for {path}: {e}")
            raise RemoteCallFailed("PDF rendering failed", str(e)) from e

        logger.info(f"Rendered PDF {path}")

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import ValidationError as SchemaError

from llm.llm_client import LLMClient, extract_json
from presentation.html_renderer import render_presentation_html
from presentation.pdf_renderer import PdfRenderer
from storage.base import TaskStore
from taskagent.errors import PersistenceFailed, PresentationContentMalformed, ValidationError
from taskagent.models import PresentationContent

logger = logging.getLogger(__name__)

UPLOADS_DIR = os.getenv("UPLOADS_DIR", "public/uploads")
UPLOADS_URL_PREFIX = os.getenv("UPLOADS_URL_PREFIX", "/uploads").rstrip("/")

OUTLINE_SYSTEM_PROMPT = """Create a presentation outline for the topic.
Format as JSON: {"slides": [{"title": "...", "points": ["...", "..."]}]}.
Each slide should have a title and bullet points.
Include 5-7 slides including an introduction and conclusion.
Keep points concise and impactful."""


def parse_outline(text: str) -> PresentationContent:
    """Validate the outline returned by the model; raises PresentationContentMalformed."""
    try:
        data = extract_json(text)
    except ValueError as e:
        raise PresentationContentMalformed(detail=str(e)) from e

    # Some models return the bare slide list.
    if isinstance(data, list):
        data = {"slides": data}

    try:
        content = PresentationContent.model_validate(data)
    except SchemaError as e:
        raise PresentationContentMalformed(detail=str(e)) from e

    if not content.slides:
        raise PresentationContentMalformed(detail="outline has no slides")
    return content


@dataclass(frozen=True)
class PresentationReport:
    presentation_id: str
    pdf_url: str
    content: PresentationContent

    def to_response(self) -> dict:
        return {
            "success": True,
            "presentationId": self.presentation_id,
            "pdfUrl": self.pdf_url,
            "content": self.content.model_dump(),
        }


class PresentationService:

    def __init__(
        self,
        store: TaskStore,
        renderer: PdfRenderer,
        llm_client: Optional[LLMClient] = None,
        uploads_dir: str = UPLOADS_DIR,
        url_prefix: str = UPLOADS_URL_PREFIX,
    ):
        self.store = store
        self.renderer = renderer
        self.llm = llm_client or LLMClient()
        self.uploads_dir = Path(uploads_dir)
        self.url_prefix = url_prefix

    async def create(self, user_id: str, topic: Optional[str]) -> PresentationReport:
        if not topic or not topic.strip():
            raise ValidationError("Topic is required")

        presentation = await self.store.create_presentation(user_id, topic)
        filename = f"presentation-{presentation.id}.pdf"

        try:
            raw = await asyncio.to_thread(
                self.llm.complete, system=OUTLINE_SYSTEM_PROMPT, user=topic
            )
            content = parse_outline(raw)
            html = render_presentation_html(topic, content.slides)
            await self.renderer.render(html, self.uploads_dir / filename)
            pdf_url = f"{self.url_prefix}/{filename}"
            await self.store.complete_presentation(presentation.id, content, pdf_url)
        except Exception as e:
            logger.error(f"Presentation {presentation.id} failed: {e}")
            await self._mark_failed(presentation.id)
            raise

        logger.info(f"Presentation {presentation.id} ready with {len(content.slides)} slides")

        return PresentationReport(
            presentation_id=presentation.id,
            pdf_url=pdf_url,
            content=content,
        )

    async def _mark_failed(self, presentation_id: str) -> None:
        try:
            await self.store.fail_presentation(presentation_id)
        except PersistenceFailed as e:
            # The original error is the one worth reporting.
            logger.error(f"Could not mark presentation {presentation_id} as failed: {e}")

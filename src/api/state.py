from typing import Optional

from campaigns.delivery import EmailDelivery
from llm.llm_client import LLMClient
from presentation.pdf_renderer import PdfRenderer
from storage.base import TaskStore

# Process-wide collaborators, built once at startup (see api.main) and handed
# to request handlers through api.dependencies.
store: Optional[TaskStore] = None
llm_client: Optional[LLMClient] = None
delivery: Optional[EmailDelivery] = None
pdf_renderer: Optional[PdfRenderer] = None

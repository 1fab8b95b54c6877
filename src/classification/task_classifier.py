import logging
from typing import Optional

from pydantic import ValidationError as SchemaError

from api.metrics import CLASSIFICATION_FALLBACK_TOTAL, CLASSIFICATIONS_TOTAL
from llm.llm_client import LLMClient, extract_json
from llm.schemas import ClassificationResult
from taskagent.errors import ClassificationMalformed
from taskagent.models import TaskKind

logger = logging.getLogger(__name__)

CLASSIFY_SYSTEM_PROMPT = """Analyze the user request and categorize it as one of these types:
EMAIL: Tasks related to email marketing or campaigns
PRESENTATION: Tasks requiring presentation creation
GENERAL: Other planning or organization tasks

Respond with a JSON object containing:
{
  "type": "EMAIL|PRESENTATION|GENERAL",
  "parameters": {
    // Extracted relevant parameters based on type.
    // EMAIL: "subject", "body" (HTML), "recipients" (list of email addresses)
    // PRESENTATION: "topic"
  }
}"""


def parse_classification(text: str) -> ClassificationResult:
    """Validate raw model output; raises ClassificationMalformed on any mismatch."""
    try:
        data = extract_json(text)
    except ValueError as e:
        raise ClassificationMalformed(detail=str(e)) from e

    if not isinstance(data, dict):
        raise ClassificationMalformed(detail="classification output is not an object")

    try:
        return ClassificationResult.model_validate(data)
    except SchemaError as e:
        raise ClassificationMalformed(detail=str(e)) from e


class TaskClassifier:

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self.llm = llm_client or LLMClient()

    def classify(self, prompt: str) -> ClassificationResult:
        """Label a free-text request with a task kind and extracted parameters.

        A malformed answer falls back to GENERAL with no parameters so that plain
        planning still works; a failed remote call propagates as RemoteCallFailed.
        """
        raw = self.llm.complete(system=CLASSIFY_SYSTEM_PROMPT, user=prompt)
        try:
            result = parse_classification(raw)
        except ClassificationMalformed as e:
            logger.warning(f"Classification output malformed, falling back to GENERAL: {e}")
            try:
                CLASSIFICATION_FALLBACK_TOTAL.inc()
            except Exception:
                pass
            result = ClassificationResult(kind=TaskKind.GENERAL, parameters={})
        else:
            logger.info(f"Classified request as {result.kind.value}")

        try:
            CLASSIFICATIONS_TOTAL.labels(kind=result.kind.value).inc()
        except Exception:
            pass
        return result


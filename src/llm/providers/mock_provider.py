from __future__ import annotations
import json
from typing import Optional

from llm.providers.base import LLMProvider


class MockProvider(LLMProvider):
    def generate(
        self,
        *,
        system: str,
        user: str,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Returns dummy responses based on the prompt content.
        """
        lower_user = user.lower()

        # Classification request
        if "categorize it as one of these types" in system:
            if "email" in lower_user or "newsletter" in lower_user:
                return json.dumps({
                    "type": "EMAIL",
                    "parameters": {
                        "subject": "Hello from the team",
                        "body": f"<p>{user}</p>",
                        "recipients": [],
                    },
                })
            if "presentation" in lower_user or "slides" in lower_user or "deck" in lower_user:
                return json.dumps({"type": "PRESENTATION", "parameters": {"topic": user}})
            return json.dumps({"type": "GENERAL", "parameters": {}})

        # Presentation outline request
        if "presentation outline" in system:
            return json.dumps({
                "slides": [
                    {"title": "Introduction", "points": [f"What is {user}?", "Why it matters"]},
                    {"title": "Background", "points": ["Where we are today", "Key drivers"]},
                    {"title": "Main Ideas", "points": ["First idea", "Second idea", "Third idea"]},
                    {"title": "Examples", "points": ["A practical example", "Lessons learned"]},
                    {"title": "Conclusion", "points": ["Summary", "Next steps"]},
                ]
            })

        # Planning request
        return (
            f"1. Clarify the goal: {user}\n"
            "2. Break the work into milestones.\n"
            "3. Assign owners and deadlines.\n"
            "4. Review progress weekly."
        )

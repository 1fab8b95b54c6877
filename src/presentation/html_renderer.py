from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from taskagent.models import Slide

TEMPLATES_DIR = Path(__file__).parent / "templates"

# .html templates are autoescaped, so model text never becomes markup.
_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=select_autoescape(),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_presentation_html(topic: str, slides: Sequence[Slide]) -> str:
    """A cover page with the topic, then one page per slide."""
    template = _env.get_template("deck.html")
    return template.render(topic=topic, slides=slides)

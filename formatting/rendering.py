"""Markdown to HTML through the Python-Markdown package."""
import markdown
from django.conf import settings


def markdown_to_html(text, extensions=None):
    """Render markdown ``text``; raw HTML is passed through for the tag filter to handle."""
    if not text:
        return ''
    if extensions is None:
        extensions = settings.FORMATTING['MARKDOWN_EXTENSIONS']
    return markdown.markdown(text, extensions=list(extensions))

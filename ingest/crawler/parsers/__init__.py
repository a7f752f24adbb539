"""Parser package exports."""

from .html_parser import PageParser, clean_text, parse_publish_date

__all__ = [
    "PageParser",
    "clean_text",
    "parse_publish_date",
]

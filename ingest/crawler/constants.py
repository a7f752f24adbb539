"""Default values shared by config, fetcher, parser, and job controller."""

from __future__ import annotations


DEFAULT_MAX_PAGES = 20
DEFAULT_MAX_DEPTH = 2
DEFAULT_DELAY_MS = 1000
DEFAULT_REPROCESS_BACKLOG = True
DEFAULT_MAX_CONCURRENT_JOBS = 3
DEFAULT_OUTPUT_DIR = "crawled_output"

FETCH_TIMEOUT_SECONDS = 30.0

DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "pl-PL,pl;q=0.9,en;q=0.8",
}

HTML_CONTENT_TYPES = ("text/html", "application/xhtml")

DEFAULT_TITLE_SELECTOR = "h1, h2, .title, .entry-title, .post-title"
DEFAULT_CONTENT_SELECTOR = "article, .content, .entry-content, main, #content, .post-content, body"
DEFAULT_LINKS_SELECTOR = "a[href]"
DEFAULT_DATE_SELECTOR = ".date, time, .post-date, .entry-date"
DEFAULT_PDF_LINKS_SELECTOR = 'a[href$=".pdf"], a[href*="pdf"]'

DEFAULT_INCLUDE_PATTERNS = ("aktualnosci", "news", "dokumenty", "uchwaly", "informacje")
DEFAULT_EXCLUDE_PATTERNS = ("login", "wp-admin", "feed", "rss", "admin")

NOISE_SELECTOR = (
    "script, style, noscript, nav, footer, header, .menu, .sidebar, "
    ".navigation, .cookie-notice, .cookie-banner, #cookie-banner, .popup"
)

SKIP_EXTENSIONS = (
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".webp",
    ".bmp",
    ".ico",
    ".svg",
    ".css",
    ".js",
    ".woff",
    ".woff2",
    ".ttf",
    ".otf",
    ".eot",
)

MIN_CONTENT_CHARS = 100
MAX_CONTENT_CHARS = 50_000
UNTITLED_DOCUMENT = "Bez tytułu"

CLASSIFY_HEAD_CHARS = 1000
MAX_KEYWORDS = 10

SUMMARY_MIN_CHARS = 500
SUMMARY_INPUT_CHARS = 3000
EMBEDDING_INPUT_CHARS = 5000

BACKLOG_LIMIT = 50

DEFAULT_AI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_AI_API_KEY_ENV = "OPENAI_API_KEY"
DEFAULT_SUMMARY_MODEL = "gpt-4o-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_AI_TIMEOUT_SECONDS = 60.0
SUMMARY_MAX_TOKENS = 200

SUPPORTED_CONFIG_SUFFIXES = (".yaml", ".yml", ".json")
JSON_INDENT = 2

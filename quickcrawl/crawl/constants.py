"""Stage names for the crawl workflow.

Use these instead of string literals; they show up in logs, timeout errors
and ``failed_stage``.
"""

FETCH_HTML = "fetch_html"
EXTRACT_METADATA = "extract_metadata"
PARSE_DOCUMENT = "parse_document"
CLEAN_DOCUMENT = "clean_document"
CONVERT_TO_MARKDOWN = "convert_to_markdown"

USER_AGENT = "Quickcrawl/1.0 (+https://github.com/quickcrawl)"

"""Request-scoped services."""

from quickcrawl.services.crawl_service import CrawlService, build_crawl_service

__all__ = ["CrawlService", "build_crawl_service"]

"""Poll a Jenkins Pipeline build and snapshot its stage logs until it finishes."""

from .crawler import CrawlSession, run_crawl, start_crawl

__all__ = ["CrawlSession", "run_crawl", "start_crawl"]

__version__ = "1.0.0"

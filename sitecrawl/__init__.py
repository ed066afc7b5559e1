"""sitecrawl: whole-site crawl orchestration and page normalization."""

__version__ = "0.1.0"

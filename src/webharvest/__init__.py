"""webharvest: multi-engine web search and page content extraction."""

__version__ = "0.1.0"

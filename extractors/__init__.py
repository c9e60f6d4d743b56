"""Extractor plugin system for webcomic sources.

Plugin architecture for multi-site extraction:
- loader: Extractor contract and plugin source loading
- common: HTTP and text helpers shared by plugins
- plugins: Actual extractor implementations (one file per site)
"""

from extractors import loader

__all__ = ["loader"]

"""Utilities and helper functions.

- exceptions: Error taxonomy (LoadError, NotFoundError, NetworkError, ParseError, ...)
- logging: loguru setup and get_logger()
"""

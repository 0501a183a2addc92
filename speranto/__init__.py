"""
speranto - incremental LLM translation for Markdown, JSON, JS/TS and database rows
"""

__version__ = "0.4.0"

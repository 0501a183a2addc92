"""
Chunking and grouping of parsed content into translation units.
"""

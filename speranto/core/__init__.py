"""
Core translation pipeline: parsers, chunking, change detection, orchestration.
"""

"""
Quiz content pipeline: registry, deduplicated question stores, tracking index,
content adapters and transcript scrapers.
"""

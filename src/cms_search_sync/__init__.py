"""
cms-search-sync

Resumable, paginated synchronization of CMS content, media and members into
a search index.
"""

__version__ = "1.0.0"

"""
Scripture context retrieval for grounded chat answers.

Turns a free-text question into an ordered, deduplicated list of verse
citations (store lookups, vector search, keyword policy, cross-references,
original-language tags) with a pure-API fallback when the store is down.
"""

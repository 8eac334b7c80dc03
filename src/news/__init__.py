"""
News Module
===========

Feed ingestion and article processing for the Mada-Flash store:
- Multi-source RSS fetching with per-source isolation
- Blocklist filtering and keyword categorization
- AI rewriting through a provider fallback chain
- Deduplicated persistence and retention of the article table
- Cron-triggered pipelines
"""

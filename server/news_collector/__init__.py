"""
News Collector Service

Ingestion side of the Trump-news aggregator. Polls RSS feeds (and optionally
Truth Social), keeps only Trump-related items, drops anything already stored,
persists new articles and announces them on the internal event bus.

Architecture:
    sources -> fetchers -> content_filter -> dedup -> stores -> events

Components:
    - sources: registry of RSS feeds with their editorial bias
    - fetchers: RSS (aiohttp + feedparser) and Truth Social API clients
    - content_filter: keyword relevance predicate
    - dedup: URL / text fingerprints and the duplicate pre-check
    - stores: SQLAlchemy-backed article, alert and storyline stores
    - collector: one collection cycle over every configured source
"""

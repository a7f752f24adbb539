"""Crawl-and-ingest pipeline for municipal and public-information portals."""

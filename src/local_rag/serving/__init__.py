"""
Serving — FastAPI application for the retrieval pipeline.

Exposes ingest, query and stats over HTTP for local use or a container.
"""

"""
JobHunter discovery backend.

Core components:
- discovery: source catalog, selector, fetcher, extractor, tiered orchestrator
- api: FastAPI surface over the discovery service
- utils: free-text parsing helpers
"""

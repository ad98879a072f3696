"""
X API ingestion: fetch, normalize, upsert.
"""

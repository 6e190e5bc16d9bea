"""
logdrain_service

Ingestion daemon for drained edge/proxy log batches: strict schema
validation, one stored record per event and sampled per-channel retention.
"""

__version__ = "0.1.0"

"""Business Logic Services.

This package contains the service modules of the translation core.

Service Categories:
- Cache: content-addressed LRU + TTL translation cache
- Errors: failure taxonomy, retry policy, error history
- Session: session fencing for overlapping requests
- Translation: stream decoding, Anthropic transport, engine

Shared:
- text_processing: key normalization, masking, prompt sanitization
- metrics: Prometheus counters and histograms
- protocols: transport interface
"""

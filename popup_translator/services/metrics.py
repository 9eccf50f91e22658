"""Prometheus metrics instrumentation for the translation core.

Metrics are collected in-process only; exposing or shipping them is left
to the host application.

Metrics exported:
- translations_total: Counter of finished translations by outcome
- translation_cache_lookups_total: Counter of cache lookups by result
- translation_stream_latency_seconds: Histogram of network translation time per model

Usage:
    from popup_translator.services.metrics import translations_total

    translations_total.labels(outcome='completed').inc()
"""

from prometheus_client import Histogram, Counter

# outcome: completed, cache_hit, failed, superseded, cancelled
translations_total = Counter(
    'translations_total',
    'Total translations finished',
    labelnames=['outcome']
)

# result: hit, miss
cache_lookups = Counter(
    'translation_cache_lookups_total',
    'Translation cache lookups',
    labelnames=['result']
)

stream_latency = Histogram(
    'translation_stream_latency_seconds',
    'Time from request to terminal stream event',
    labelnames=['model']
)

"""
LinguaLens - Prometheus Metrics
===============================
Centralized metrics definitions for observability.
"""

from prometheus_client import Counter, Histogram, Gauge, Info

# =============================================================================
# Application Info
# =============================================================================

app_info = Info("lingualens_app", "Application information")
app_info.info({
    "version": "0.1.0",
    "service": "backend",
})

# =============================================================================
# Request Metrics
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    labelnames=["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0)
)

# =============================================================================
# Translation Metrics
# =============================================================================

translations_total = Counter(
    "translations_total",
    "Total translation requests",
    labelnames=["cached"]
)

translation_cache_hits_total = Counter(
    "translation_cache_hits_total",
    "Translations served from the in-memory cache"
)

translation_duration_seconds = Histogram(
    "translation_duration_seconds",
    "Uncached translation duration in seconds",
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)
)

# =============================================================================
# OCR Metrics
# =============================================================================

ocr_attempts_total = Counter(
    "ocr_attempts_total",
    "Total OCR attempts",
    labelnames=["content_type"]
)

ocr_failures_total = Counter(
    "ocr_failures_total",
    "Total OCR failures",
    labelnames=["content_type"]
)

ocr_duration_seconds = Histogram(
    "ocr_duration_seconds",
    "OCR duration in seconds",
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0)
)

# =============================================================================
# LLM Metrics
# =============================================================================

llm_requests_total = Counter(
    "llm_requests_total",
    "Total OpenAI requests",
    labelnames=["operation"]
)

llm_failures_total = Counter(
    "llm_failures_total",
    "Total OpenAI request failures",
    labelnames=["operation"]
)

llm_request_duration_seconds = Histogram(
    "llm_request_duration_seconds",
    "OpenAI request duration in seconds",
    labelnames=["operation"],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)
)

# =============================================================================
# Speech / Export Metrics
# =============================================================================

speech_requests_total = Counter(
    "speech_requests_total",
    "Total speech requests",
    labelnames=["provider"]
)

pdf_exports_total = Counter(
    "pdf_exports_total",
    "Total PDF exports"
)

# =============================================================================
# Database Metrics
# =============================================================================

database_is_healthy = Gauge(
    "database_is_healthy",
    "Database health status (1=healthy, 0=unhealthy)"
)

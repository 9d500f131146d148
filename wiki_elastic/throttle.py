"""
wiki_elastic.throttle — Concurrency limits and HTTP defaults for the Elastic client.
"""

MAX_AVAILABLE = 10                 # permits (in-flight requests) per dispatcher
REQUEST_TIMEOUT = 30               # seconds, per HTTP call
IO_THREADS = 10                    # client-side threads completing async writes
DEFAULT_ELASTIC_URL = "http://localhost:9200"
DEFAULT_DOC_TYPE = "wikipage"
DEFAULT_SHARDS = 1
DEFAULT_REPLICAS = 0

REQUEST_HEADERS = {
    "User-Agent": "wiki-elastic/1.0",
    "Accept": "application/json",
    "Content-Type": "application/json",
}
BULK_HEADERS = {
    **REQUEST_HEADERS,
    "Content-Type": "application/x-ndjson",
}

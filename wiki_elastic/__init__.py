"""
wiki_elastic — Push parsed Wikipedia pages into Elasticsearch over its REST API,
with a fair permit pool bounding in-flight requests.

Re-exports the public symbols so that ``from wiki_elastic import ElasticAPI``
works without knowing the module layout.
"""

from wiki_elastic.throttle import (
    MAX_AVAILABLE,
    REQUEST_TIMEOUT,
    IO_THREADS,
    DEFAULT_ELASTIC_URL,
    DEFAULT_DOC_TYPE,
    DEFAULT_SHARDS,
    DEFAULT_REPLICAS,
    REQUEST_HEADERS,
    BULK_HEADERS,
)

from wiki_elastic.log import configure_logging, get_logger

from wiki_elastic.errors import ElasticError, ElasticsearchError, TransportError

from wiki_elastic.models import WikiPage, is_valid_request

from wiki_elastic.outcome import Outcome, OutcomeStatus

from wiki_elastic.permits import PermitLease, PermitPool

from wiki_elastic.config import ElasticSettings, IndexConfiguration

from wiki_elastic.files import (
    open_compressed_file,
    close_compressed_file,
    get_file_content,
)

from wiki_elastic.client import ElasticClient, build_bulk_body

from wiki_elastic.listener import (
    ActionListener,
    DocCreateListener,
    BulkCreateListener,
    PermitReleasingListener,
)

from wiki_elastic.api import ElasticAPI

from wiki_elastic.observability import (
    REJECTION_RATE_WARNING,
    REJECTION_RATE_CRITICAL,
    ABORT_RATE_WARNING,
    BULK_REJECTED_ITEMS_MAX,
    EMPTY_RESULT_MIN_DOCS,
    THROUGHPUT_DROP_FACTOR,
    start_indexing_run,
    finish_indexing_run,
    evaluate_alerts,
)

from wiki_elastic.report import (
    metrics_to_frame,
    outcomes_to_frame,
    summarize_outcomes,
)

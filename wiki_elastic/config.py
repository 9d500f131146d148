"""
wiki_elastic.config — Connection settings and index configuration.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from wiki_elastic.files import get_file_content
from wiki_elastic.throttle import (
    DEFAULT_DOC_TYPE,
    DEFAULT_ELASTIC_URL,
    DEFAULT_REPLICAS,
    DEFAULT_SHARDS,
    IO_THREADS,
    MAX_AVAILABLE,
    REQUEST_TIMEOUT,
)


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else int(v)


def _env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else float(v)


def _env_optional_float(name: str) -> Optional[float]:
    v = os.getenv(name)
    return None if v is None or v.strip() == "" else float(v)


def _json_object(text: str, what: str) -> dict:
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a JSON object, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class ElasticSettings:
    url: str = DEFAULT_ELASTIC_URL

    # Hard gates
    max_available: int = MAX_AVAILABLE
    io_threads: int = IO_THREADS

    # Timeouts (seconds). None = wait forever / no watchdog
    request_timeout: float = REQUEST_TIMEOUT
    acquire_timeout: Optional[float] = None
    lease_timeout: Optional[float] = None

    @staticmethod
    def from_env() -> "ElasticSettings":
        return ElasticSettings(
            url=os.getenv("ELASTIC_URL") or DEFAULT_ELASTIC_URL,
            max_available=_env_int("ELASTIC_MAX_AVAILABLE", MAX_AVAILABLE),
            io_threads=_env_int("ELASTIC_IO_THREADS", IO_THREADS),
            request_timeout=_env_float("ELASTIC_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
            acquire_timeout=_env_optional_float("ELASTIC_ACQUIRE_TIMEOUT"),
            lease_timeout=_env_optional_float("ELASTIC_LEASE_TIMEOUT"),
        )


@dataclass(frozen=True)
class IndexConfiguration:
    """
    What ``ElasticAPI.create_index`` needs.  The settings and mapping texts
    are raw JSON handed to the engine as-is.
    """

    index_name: str
    doc_type: str = DEFAULT_DOC_TYPE
    shards: int = DEFAULT_SHARDS
    replicas: int = DEFAULT_REPLICAS
    setting_file_content: Optional[str] = None
    mapping_file_content: Optional[str] = None

    @staticmethod
    def from_file(path) -> "IndexConfiguration":
        """
        Load a JSON configuration such as::

            {"indexName": "enwiki_v1", "docType": "wikipage",
             "shards": 1, "replicas": 0,
             "settingFile": "en_map_settings.json",
             "mappingFile": "en_mapping.json"}

        ``settingFile`` / ``mappingFile`` are resolved relative to the
        configuration file and their contents loaded.
        """
        path = Path(path)
        with path.open(encoding="utf-8") as fh:
            raw = json.load(fh)

        if not raw.get("indexName"):
            raise ValueError(f"'indexName' missing from {path}")

        def _load(key: str) -> Optional[str]:
            name = raw.get(key)
            return get_file_content(path.parent / name) if name else None

        return IndexConfiguration(
            index_name=raw["indexName"],
            doc_type=raw.get("docType") or DEFAULT_DOC_TYPE,
            shards=int(raw.get("shards", DEFAULT_SHARDS)),
            replicas=int(raw.get("replicas", DEFAULT_REPLICAS)),
            setting_file_content=_load("settingFile"),
            mapping_file_content=_load("mappingFile"),
        )

    def to_request_body(self) -> dict:
        """Body of ``PUT /{index}``: shard/replica counts, then the raw settings, then the mapping."""
        settings: dict = {
            "index.number_of_shards": self.shards,
            "index.number_of_replicas": self.replicas,
        }
        if self.setting_file_content:
            settings.update(_json_object(self.setting_file_content, "settings"))

        body: dict = {"settings": settings}
        if self.mapping_file_content:
            body["mappings"] = {self.doc_type: _json_object(self.mapping_file_content, "mapping")}
        return body

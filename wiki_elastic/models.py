"""
wiki_elastic.models — The page record handed over by the parsing pipeline.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class WikiPage:
    """
    One parsed Wikipedia page, ready to be indexed.

    Only ``id`` and ``title`` are interpreted here; everything else is an
    opaque payload serialised verbatim into the document body.
    """

    id: int
    title: str
    text: str = ""
    redirect_title: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def doc_id(self) -> str:
        return str(self.id)

    def to_dict(self) -> dict:
        body = asdict(self)
        extra = body.pop("extra")
        # extra keys never override the core fields
        return {**extra, **body}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def is_valid_request(index_name: Optional[str], index_type: Optional[str], page: Optional[WikiPage]) -> bool:
    """A write is issued only for a positive id, a non-empty title and a named index/type."""
    return (
        page is not None
        and page.id is not None
        and page.id > 0
        and bool(page.title)
        and bool(index_name)
        and bool(index_type)
    )

from __future__ import annotations

from typing import Any, Dict, List

from fastapi.responses import JSONResponse

from verifier.contracts.profile import coercion
from verifier.contracts.verification import VerificationResult
from verifier.web.actions import action
from verifier.web.context import RequestContext
from verifier.web.controller import VerifierController


class SearchQuery:
    """
    Parsed search string: bare words are terms, ``key:value`` pairs are
    field filters.
    """

    def __init__(self, raw: str, terms: List[str], filters: Dict[str, str]) -> None:
        self.raw = raw
        self.terms = terms
        self.filters = filters

    def __repr__(self) -> str:
        return f"SearchQuery({self.raw!r})"

    @classmethod
    def parse(cls, raw: str) -> "SearchQuery":
        terms: List[str] = []
        filters: Dict[str, str] = {}
        for tok in raw.split():
            k, sep, v = tok.partition(":")
            if sep and k and v:
                filters[k] = v
            else:
                terms.append(tok)
        if not terms and not filters:
            raise ValueError("empty query")
        return cls(raw=raw, terms=terms, filters=filters)


class SearchController(VerifierController):
    namespace = "search"
    prefix = "/v1/search"
    config = {
        "verifiers": {
            "search": {
                "filters": ["trim"],
                "page": {
                    "type": int,
                    "post_check": lambda r: r.get_value("page") > 0,
                },
                "query": {
                    "type": SearchQuery,
                    "required": True,
                    "coercion": coercion(str, SearchQuery.parse),
                },
            },
            "suggest": {
                "filters": ["trim", "collapse"],
                "prefix": {"type": str, "required": True, "min_length": 2, "max_length": 64},
                "limit": {"type": int, "default": 10},
            },
        },
        "detach_on_failure": "bad_args",
    }

    @action("", methods=["GET", "POST"])
    def search(self, c: RequestContext) -> Dict[str, Any]:
        results = self.verify(c)
        query: SearchQuery = results.get_value("query")
        return {
            "ok": True,
            "page": results.get_value("page") or 1,
            "query": results.get_original_value("query"),
            "terms": query.terms,
            "filters": query.filters,
        }

    @action("/suggest")
    def suggest(self, c: RequestContext) -> Dict[str, Any]:
        results = self.verify(c)
        return {"ok": True, "prefix": results.get_value("prefix"), "limit": results.get_value("limit")}

    @action()
    def bad_args(self, c: RequestContext, results: VerificationResult) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "action": c.action_name,
                "missing": results.missings(),
                "invalid": results.invalids(),
                "messages": self.messages(c, c).to_list(),
            },
        )

"""
Version list filter: pagination, ordering, search and projection.

A filter hashes over its logical values, so two filters that produce the same
query always share a cache slot.
"""

import hashlib
import json
import re
from typing import Iterable, Optional, Tuple

from constants import (
    FILTER_DEFAULT_LIMIT,
    FILTER_DEFAULT_OFFSET,
    FILTER_DEFAULT_ORDER,
    FILTER_DEFAULT_ORDER_BY,
    FILTER_MAX_LIMIT,
    ORDER_ASC,
    ORDER_DESC,
    VERSION_ORDER_FIELDS,
    VERSION_PROJECTION_FIELDS,
)
from exceptions import EncodingException, ValidationException

FILTER_ARGS = ("limit", "offset", "order_by", "order", "search", "fields")

# Characters with a meaning in tsquery syntax
TSQUERY_OPERATORS = re.compile(r"[&|!():*<>'\\]")


def normalize_search(search: Optional[str]) -> Optional[str]:
    if search is None:
        return None
    collapsed = " ".join(search.split())
    return collapsed or None


def normalize_fields(fields: Optional[Iterable[str]]) -> Optional[Tuple[str, ...]]:
    if not fields:
        return None
    return tuple(sorted(set(fields)))


def search_terms(search: Optional[str]):
    """Split normalized search text into the terms that must all match."""
    normalized = normalize_search(search)
    return normalized.split(" ") if normalized else []


def to_tsquery_text(search: Optional[str]) -> str:
    """
    Join search terms with a logical AND for to_tsquery.

    Operator characters are dropped so user input can never form an
    invalid or different tsquery.
    """
    return " & ".join(TSQUERY_OPERATORS.sub(" ", " ".join(search_terms(search))).split())


class VersionFilter:
    """Immutable query shape for version listings"""

    __slots__ = ("limit", "offset", "order_by", "order", "search", "fields")

    def __init__(self, limit=None, offset=None, order_by=None, order=None, search=None, fields=None):
        values = {
            "limit": FILTER_DEFAULT_LIMIT if limit is None else limit,
            "offset": FILTER_DEFAULT_OFFSET if offset is None else offset,
            "order_by": order_by or FILTER_DEFAULT_ORDER_BY,
            "order": (order or FILTER_DEFAULT_ORDER).lower(),
            "search": normalize_search(search),
            "fields": normalize_fields(fields),
        }
        self._validate(values)
        for name, value in values.items():
            object.__setattr__(self, name, value)

    def __setattr__(self, name, value):
        raise AttributeError("VersionFilter is immutable")

    @staticmethod
    def _validate(values):
        limit = values["limit"]
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= FILTER_MAX_LIMIT:
            raise ValidationException(f"limit must be an integer between 1 and {FILTER_MAX_LIMIT}")

        offset = values["offset"]
        if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
            raise ValidationException("offset must be a non-negative integer")

        if values["order_by"] not in VERSION_ORDER_FIELDS:
            raise ValidationException(f"order_by must be one of {', '.join(VERSION_ORDER_FIELDS)}")

        if values["order"] not in (ORDER_ASC, ORDER_DESC):
            raise ValidationException("order must be asc or desc")

        unknown = [f for f in values["fields"] or () if f not in VERSION_PROJECTION_FIELDS]
        if unknown:
            raise ValidationException(f"unknown fields: {', '.join(unknown)}")

    @classmethod
    def from_args(cls, args) -> Optional["VersionFilter"]:
        """
        Build a filter from request query arguments.

        Returns None when no filter argument is present at all.
        """
        if not any(name in args for name in FILTER_ARGS):
            return None

        def _int(name):
            raw = args.get(name)
            if raw is None or raw == "":
                return None
            try:
                return int(raw)
            except (TypeError, ValueError):
                raise ValidationException(f"{name} must be an integer")

        fields = args.get("fields")
        if fields:
            fields = [f.strip() for f in fields.split(",") if f.strip()]

        return cls(
            limit=_int("limit"),
            offset=_int("offset"),
            order_by=args.get("order_by") or None,
            order=args.get("order") or None,
            search=args.get("search"),
            fields=fields,
        )

    def as_dict(self):
        return {
            "limit": self.limit,
            "offset": self.offset,
            "order_by": self.order_by,
            "order": self.order,
            "search": self.search,
            "fields": list(self.fields) if self.fields else None,
        }

    @staticmethod
    def hash(version_filter: Optional["VersionFilter"]) -> str:
        """SHA-256 over the canonical JSON of the filter. None hashes to its own constant."""
        payload = None if version_filter is None else version_filter.as_dict()
        try:
            encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as e:
            raise EncodingException(f"could not encode version filter: {e}")
        return hashlib.sha256(encoded.encode("utf-8")).hexdigest()

    def __eq__(self, other):
        if not isinstance(other, VersionFilter):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __hash__(self):
        return hash(VersionFilter.hash(self))

    def __repr__(self):
        return f"VersionFilter({self.as_dict()})"

"""Run-scoped token deduplication and bucket ordering."""

from typing import Iterator, List, Optional, Set, Tuple

from rentfinder.scrapers.base import FeedPayload

# Feed buckets in the order they are read; earlier buckets win duplicates
BUCKET_ORDER = (
    "private",
    "agency",
    "platinum",
    "kingOfTheHar",
    "trio",
    "booster",
    "leadingBroker",
)


class Deduplicator:
    """Holds the set of tokens already accepted during one run.

    The first occurrence of a token wins; every later item with the same
    token, on any page and in any bucket, is a duplicate.
    """

    def __init__(self):
        self._seen: Set[str] = set()
        self.duplicates = 0

    def check_and_add(self, token: Optional[str]) -> bool:
        """Record a token.

        Returns:
            True if the token is new, False if it was seen before
        """
        if not token:
            return False
        if token in self._seen:
            self.duplicates += 1
            return False
        self._seen.add(token)
        return True

    def is_duplicate(self, token: Optional[str]) -> bool:
        """True if the token was already accepted; counted as a duplicate."""
        if token and token in self._seen:
            self.duplicates += 1
            return True
        return False

    def __contains__(self, token: object) -> bool:
        return token in self._seen

    def __len__(self) -> int:
        return len(self._seen)


def unknown_buckets(payload: FeedPayload) -> List[str]:
    """Names of list-valued buckets outside BUCKET_ORDER, sorted."""
    return sorted(name for name in payload.buckets if name not in BUCKET_ORDER)


def bucket_order(payload: FeedPayload, include_unknown: bool = False) -> List[str]:
    """Bucket names to read from a payload, in deterministic order.

    The known buckets always come first, present or not. Unknown list-valued
    buckets follow in sorted name order when include_unknown is set.
    """
    order = list(BUCKET_ORDER)
    if include_unknown:
        order.extend(unknown_buckets(payload))
    return order


def iter_bucket_items(
    payload: FeedPayload, include_unknown: bool = False
) -> Iterator[Tuple[str, dict]]:
    """Yield (bucket, item) pairs in bucket order; missing buckets are empty."""
    for name in bucket_order(payload, include_unknown):
        for item in payload.bucket(name):
            yield name, item

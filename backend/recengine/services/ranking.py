"""Helpers for bounded, fully-rewritten sorted sets"""

from typing import Callable, Dict, List, Optional

from redis import Redis

from ..utils.store import run_transaction


def rank_window(scores: Dict[str, float], top: Optional[int] = None, bottom: int = 0) -> Dict[str, float]:
    """
    Keep the ``top`` highest and ``bottom`` lowest entries of a ranking

    Entries are ordered the way Redis orders a sorted set: by score, then
    by member. With ``top`` unset nothing is dropped.

    Example:
        >>> rank_window({"a": -0.5, "b": 0.1, "c": 0.2, "d": 0.7, "e": 1.0}, top=2, bottom=1)
        {'a': -0.5, 'd': 0.7, 'e': 1.0}
    """
    if top is None or len(scores) <= top + bottom:
        return dict(scores)

    ordered = sorted(scores.items(), key=lambda entry: (entry[1], entry[0]))
    kept = ordered[:bottom] + ordered[len(ordered) - top:]
    return dict(kept)


def replace_sorted_set(
    redis_client: Redis,
    key: str,
    entries: Dict[str, float],
    owner: str,
    reverse_key: Callable[[str], str],
    live_keys: Optional[Callable[[str], List[str]]] = None,
) -> int:
    """
    Overwrite a sorted set and keep its reverse index in step

    ``reverse_key(member)`` names the set that records which owners hold
    ``member``. Members that drop out lose ``owner`` from their reverse
    set; kept members gain it. One transaction, retried on conflict.

    ``live_keys(member)`` names keys of which at least one must exist for
    the member to be written. They are watched, so a member purged while
    the entries were being computed is left out instead of restored.

    Returns:
        Number of entries written
    """

    def _replace(pipe) -> int:
        kept = entries
        if live_keys is not None:
            kept = {}
            for member, score in entries.items():
                guards = live_keys(member)
                pipe.watch(*guards)
                if pipe.exists(*guards):
                    kept[member] = score

        previous = set(pipe.zrange(key, 0, -1))

        pipe.multi()
        pipe.delete(key)
        for member in previous - set(kept):
            pipe.srem(reverse_key(member), owner)
        if kept:
            pipe.zadd(key, kept)
            for member in kept:
                pipe.sadd(reverse_key(member), owner)
        return len(kept)

    return run_transaction(redis_client, _replace, key)

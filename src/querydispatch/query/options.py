"""Extraction of per-call driver options from a query descriptor."""

from typing import Any, Dict, Mapping


def query_options(descriptor: Mapping[str, Any], *keys: str) -> Dict[str, Any]:
    """
    Return the named keys of ``descriptor`` that exist and are not None.

    Keys keep their names, so the result can be merged straight into a
    driver options dict. An explicit None is treated like an absent key.

    Example:
        >>> query_options({"sort": {"a": 1}, "upsert": None}, "sort", "upsert", "new")
        {'sort': {'a': 1}}
    """
    return {
        key: descriptor[key]
        for key in keys
        if key in descriptor and descriptor[key] is not None
    }


def merge_options(options: Mapping[str, Any], *overrides: Mapping[str, Any]) -> Dict[str, Any]:
    """Copy ``options`` and apply each override mapping in turn; later keys win."""
    merged = dict(options)
    for override in overrides:
        merged.update(override)
    return merged

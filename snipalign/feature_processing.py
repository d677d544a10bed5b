"""
Function normalization and feature filters.
"""

import logging
import os
import re
from typing import Callable

import pandas as pd

from snipalign.config import HYPOTHETICAL, ParameterError
from snipalign.gbk_processing import Feature

COMMENT_PATTERN = re.compile(r"\s*[#!].*$")
EC_PATTERN = re.compile(r"\s*\((?:EC|TC)\s+[\d.\-n]+\)", re.IGNORECASE)
PUNCTUATION_PATTERN = re.compile(r"[^a-z0-9]+")

FILTER_TYPES = ("NONPHAGE", "LIST")
"""Recognized feature filter names"""

FeatureFilter = Callable[[Feature], bool]


def normalize_function(function: str) -> str:
    """
    Reduce a function string to its comparable form.

    Comments (after `#` or `!`), EC/TC numbers in parentheses and case are dropped,
    and every run of punctuation or whitespace becomes a single space.
    """

    function = COMMENT_PATTERN.sub("", function)
    function = EC_PATTERN.sub("", function)
    return PUNCTUATION_PATTERN.sub(" ", function.lower()).strip()


def is_hypothetical(function: str | None) -> bool:
    """Return True if a function is empty or the hypothetical-protein placeholder."""
    if not function:
        return True
    normal = normalize_function(function)
    return not normal or normal == HYPOTHETICAL


class FunctionMap:
    """
    Append-only mapping of function strings to stable function IDs.

    Function strings are compared in normalized form, so that
    "Dehydrogenase X (EC 1.1.1.1)" and "dehydrogenase  X" share an ID.
    IDs are built from the leading words of the first name seen and made
    unique with a numeric suffix.
    """

    def __init__(self):
        self._ids = {}
        self._names = {}

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, function: str) -> bool:
        return normalize_function(function) in self._ids

    def get_by_name(self, function: str) -> str | None:
        """Return the ID of a function, or None if it has not been seen."""
        return self._ids.get(normalize_function(function))

    def find_or_insert(self, function: str) -> str:
        """Return the ID of a function, creating one if it is new."""
        normal = normalize_function(function)
        fun_id = self._ids.get(normal)
        if fun_id is None:
            fun_id = self._new_id(normal)
            self._ids[normal] = fun_id
            self._names[fun_id] = function
        return fun_id

    def get_name(self, fun_id: str) -> str | None:
        """Return the first function string recorded for an ID."""
        return self._names.get(fun_id)

    def _new_id(self, normal: str) -> str:
        words = normal.split()[:3] or ["none"]
        prefix = "".join(word[:4].capitalize() for word in words)
        fun_id = prefix
        suffix = 1
        while fun_id in self._names:
            suffix += 1
            fun_id = f"{prefix}{suffix}"
        return fun_id


def non_phage_filter(feature: Feature) -> bool:
    """Reject features with phage-related functions."""
    return "phage" not in feature.function.lower()


def read_fid_set(path_to_fid_file: str | os.PathLike) -> set[str]:
    """Read the feature IDs in the first column of a tab-delimited file with headers."""
    if not os.path.isfile(path_to_fid_file):
        raise FileNotFoundError(
            f"Feature ID file {path_to_fid_file} not found or unreadable."
        )
    table = pd.read_csv(path_to_fid_file, sep="\t", dtype=str)
    fids = set(table.iloc[:, 0].dropna())
    logging.info(f"{len(fids)} feature IDs read from {path_to_fid_file}.")
    return fids


class ListFilter:
    """Accept only features whose IDs are in a fixed set."""

    def __init__(self, fids: set[str]):
        self.fids = fids

    def __call__(self, feature: Feature) -> bool:
        return feature.id in self.fids


def create_filters(
    filter_types: list[str], path_to_fid_file: str | os.PathLike | None = None
) -> list[FeatureFilter]:
    """
    Build the filter chain for a run.

    Parameters
    ----------
    filter_types : list of str
        Filter names, among `FILTER_TYPES` (case-insensitive).
    path_to_fid_file : str or os.PathLike, optional
        Feature ID file, required by the LIST filter.

    Returns
    -------
    list of callable
        One predicate per requested filter, in order.

    Raises
    ------
    ParameterError
        If a filter name is unknown or the LIST filter has no feature ID file.
    """

    filters = []
    for filter_type in filter_types:
        filter_type = filter_type.upper()
        if filter_type == "NONPHAGE":
            filters.append(non_phage_filter)
        elif filter_type == "LIST":
            if not path_to_fid_file:
                raise ParameterError("LIST filter specified without a feature ID file.")
            filters.append(ListFilter(read_fid_set(path_to_fid_file)))
        else:
            raise ParameterError(
                f"Invalid filter type {filter_type}. Must be one of {', '.join(FILTER_TYPES)}."
            )
    return filters


def check_filters(filters: list[FeatureFilter], feature: Feature) -> bool:
    return all(feature_filter(feature) for feature_filter in filters)

"""
The `diff` command: count the proteins of test genomes that differ from every
base protein with the same function.
"""

import logging
import os

import pandas as pd

from snipalign.feature_processing import (
    FeatureFilter,
    FunctionMap,
    check_filters,
    is_hypothetical,
)
from snipalign.gbk_processing import Feature, load_genome


def protein_match(protein1: str, protein2: str) -> bool:
    """Return True if one protein is a suffix of the other, allowing for different start calls."""
    return protein1.endswith(protein2) or protein2.endswith(protein1)


class ProteinIndex:
    """
    Base proteins grouped by function.

    Parameters
    ----------
    filters : list of callable, optional
        Feature filters applied to the base genome.
    """

    def __init__(self, filters: list[FeatureFilter] | None = None):
        self.filters = filters or []
        self.function_map = FunctionMap()
        self.proteins = {}

    def __len__(self) -> int:
        return len(self.proteins)

    def get_proteins(self, feature: Feature) -> list[str] | None:
        fun_id = self.function_map.get_by_name(feature.function)
        return self.proteins.get(fun_id) if fun_id is not None else None

    def add_base(self, path_to_gbk: str | os.PathLike) -> int:
        """Add the filtered, non-hypothetical proteins of the base genome."""
        genome = load_genome(path_to_gbk)
        logging.info(f"Processing base genome {genome}.")
        count = 0
        for feature in genome.pegs:
            if not check_filters(self.filters, feature):
                continue
            if is_hypothetical(feature.function) or not feature.protein:
                continue
            fun_id = self.function_map.find_or_insert(feature.function)
            self.proteins.setdefault(fun_id, []).append(feature.protein)
            count += 1
        logging.info(
            f"{count} features in {len(self.proteins)} functions found in {genome}."
        )
        return count

    def add_alternate(self, path_to_gbk: str | os.PathLike) -> int:
        """Add the proteins of an alternate base genome whose functions are already known."""
        genome = load_genome(path_to_gbk)
        logging.info(f"Processing alternate base genome {genome}.")
        count = 0
        for feature in genome.pegs:
            proteins = self.get_proteins(feature)
            if proteins is not None and feature.protein:
                proteins.append(feature.protein)
                count += 1
        logging.info(f"{count} features found in {genome}.")
        return count


def count_protein_changes(
    path_to_base: str | os.PathLike,
    paths_to_tests: list[str | os.PathLike],
    paths_to_alts: list[str | os.PathLike] | None = None,
    filters: list[FeatureFilter] | None = None,
) -> pd.DataFrame:
    """
    Count changed proteins in each test genome.

    Parameters
    ----------
    path_to_base : str or os.PathLike
        GenBank file of the base genome.
    paths_to_tests : list of str or os.PathLike
        GenBank files of the genomes to test.
    paths_to_alts : list of str or os.PathLike, optional
        GenBank files of alternate base genomes.
    filters : list of callable, optional
        Feature filters applied to the base genome.

    Returns
    -------
    pd.DataFrame
        One row per test genome with columns `genome_id`, `genome_name` and `changes`.
    """

    index = ProteinIndex(filters)
    index.add_base(path_to_base)
    for path_to_alt in paths_to_alts or []:
        index.add_alternate(path_to_alt)

    rows = []
    for path_to_test in paths_to_tests:
        genome = load_genome(path_to_test)
        logging.info(f"Loading test genome {genome}.")
        count = 0
        changes = 0
        for feature in genome.pegs:
            proteins = index.get_proteins(feature)
            if proteins is None:
                continue
            count += 1
            if not any(protein_match(protein, feature.protein) for protein in proteins):
                changes += 1
        logging.info(f"{changes} of {count} proteins changed in {genome}.")
        rows.append((genome.id, genome.name, changes))

    return pd.DataFrame(rows, columns=["genome_id", "genome_name", "changes"])

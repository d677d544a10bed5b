"""
The `snipcount` command: summarize a feature-data file written by the `genomes` command.
"""

import logging
import os
from dataclasses import dataclass, field

import pandas as pd

COUNT_COLUMNS = ["upstream_M", "upstream_D", "instream_M", "instream_D", "changed"]


@dataclass
class FeatureData:
    """
    Contents of a feature-data file.

    Attributes
    ----------
    genomes : list of (str, str)
        Genome IDs and names in column order, base first.
    features : list of (str, list of str, list of str)
        Feature ID, groups and per-genome two-character flags.
    """

    genomes: list = field(default_factory=list)
    """Genome IDs and names"""
    features: list = field(default_factory=list)
    """Feature IDs, groups and flags"""


def read_feature_data(path_to_file: str | os.PathLike) -> FeatureData:
    """
    Parse a feature-data file.

    The file starts with `id<TAB>name` genome lines, then a `//` line, then one
    `fid<TAB>groups<TAB>flags...` line per base feature.
    """

    if not os.path.isfile(path_to_file):
        raise FileNotFoundError(
            f"Feature-data file {path_to_file} not found or unreadable."
        )
    data = FeatureData()
    in_header = True
    with open(path_to_file) as file:
        for line in file:
            line = line.rstrip("\n")
            if in_header:
                if line == "//":
                    in_header = False
                elif line:
                    genome_id, _, name = line.partition("\t")
                    data.genomes.append((genome_id, name))
                continue
            if not line:
                continue
            fid, groups, *flags = line.split("\t")
            flags = [flag.ljust(2) for flag in flags]
            flags.extend(["  "] * (len(data.genomes) - len(flags)))
            data.features.append((fid, [group for group in groups.split(",") if group], flags))
    logging.info(
        f"{len(data.features)} features for {len(data.genomes)} genomes read from {path_to_file}."
    )
    return data


def _count_rows(data: FeatureData, features: list, group: str | None) -> list[dict]:
    rows = []
    for i, (genome_id, name) in enumerate(data.genomes):
        counts = dict.fromkeys(COUNT_COLUMNS, 0)
        for _, _, flags in features:
            upstream, instream = flags[i][0], flags[i][1]
            if upstream in ("M", "D"):
                counts[f"upstream_{upstream}"] += 1
            if instream in ("M", "D"):
                counts[f"instream_{instream}"] += 1
            if flags[i].strip():
                counts["changed"] += 1
        row = {"genome_id": genome_id, "genome_name": name, **counts}
        if group is not None:
            row = {"group": group, **row}
        rows.append(row)
    return rows


def count_snips(data: FeatureData, by_group: bool = False) -> pd.DataFrame:
    """
    Count the flagged features of each genome.

    Parameters
    ----------
    data : FeatureData
        Parsed feature-data file.
    by_group : bool, optional
        If True, add a breakdown by group after the overall counts (group "all").

    Returns
    -------
    pd.DataFrame
        One row per genome (and group), with the number of features flagged "M" or "D"
        upstream and instream, and the number of features changed at all.
    """

    if not by_group:
        return pd.DataFrame(_count_rows(data, data.features, None))

    rows = _count_rows(data, data.features, "all")
    group_names = sorted({group for _, groups, _ in data.features for group in groups})
    for group in group_names:
        features = [feature for feature in data.features if group in feature[1]]
        rows.extend(_count_rows(data, features, group))
    return pd.DataFrame(rows)

import datetime
import logging
import os
from functools import wraps

import pandas as pd

from snipalign.models import GenomeLabel


def timeit(func):
    @wraps(func)
    def timeit_wrapper(*args, **kwargs):
        start_time = datetime.datetime.now()
        result = func(*args, **kwargs)
        end_time = datetime.datetime.now()
        total_time = str(end_time - start_time).split(".")[0]
        logging.info(f"Total execution time {total_time}")
        return result

    return timeit_wrapper


def read_table(path_to_table: str | os.PathLike, description: str) -> pd.DataFrame:
    """
    Read a tab-delimited file with headers, keeping every field as a string.

    Parameters
    ----------
    path_to_table : str or os.PathLike
        File to read.
    description : str
        What the file holds, for error messages.

    Returns
    -------
    pd.DataFrame
        The table, with missing fields as empty strings.
    """

    if not os.path.isfile(path_to_table):
        raise FileNotFoundError(
            f"{description} {path_to_table} not found or unreadable."
        )
    return pd.read_csv(path_to_table, sep="\t", dtype=str, keep_default_na=False)


def read_genome_labels(path_to_table: str | os.PathLike) -> list[GenomeLabel]:
    """Read genome IDs, tooltips and headers from the first three columns of a table."""
    table = read_table(path_to_table, "Genome ID ordering file")
    labels = [
        GenomeLabel(row[0], row[1] if len(row) > 1 else "", row[2] if len(row) > 2 else row[0])
        for row in table.itertuples(index=False)
    ]
    logging.info(f"{len(labels)} genome IDs read from ordering file {path_to_table}.")
    return labels


def read_group_file(path_to_table: str | os.PathLike) -> dict[str, list[str]]:
    """
    Read group memberships of base features.

    The columns are feature ID, comma-delimited modulons, regulon number and operon.
    Each feature gets `AR<regulon>`, then its operon (if any), then its modulons.
    """

    table = read_table(path_to_table, "Group file")
    groups = {}
    for fid, mods, regulon, operon in table.iloc[:, :4].itertuples(index=False):
        group_list = [f"AR{int(regulon or 0)}"]
        if operon:
            group_list.append(operon)
        if mods:
            group_list.extend(mods.split(","))
        groups[fid] = group_list
    logging.info(f"{len(groups)} group records read from {path_to_table}.")
    return groups

"""
Functions to manipulate files and directories.
"""

import os
import sys
import tempfile
from contextlib import contextmanager
from typing import IO, Iterator


def create_dirs_to_output(path_to_dirs: str | os.PathLike) -> None:
    """
    Create directories to the specified output path if they do not already exist.

    Parameters
    ----------
    path_to_dirs : str or os.PathLike
        The path to the directory or directories that need to be created.

    Returns
    -------
    None
    """

    if not os.path.isdir(path_to_dirs):
        os.makedirs(path_to_dirs)


@contextmanager
def atomic_output(path: str | os.PathLike, mode: str = "w") -> Iterator[IO]:
    """
    Open a report file so that it only appears once it is complete.

    Output goes to a temporary file next to `path`, which replaces `path` when the
    block exits normally. If the block raises, the temporary file is removed and any
    previous file at `path` is left untouched.

    Parameters
    ----------
    path : str or os.PathLike
        Final location of the file.
    mode : str, optional
        "w" for text output, "wb" for binary output. Default is "w".

    Yields
    ------
    file handle
        Handle of the temporary file.
    """

    directory = os.path.dirname(os.path.abspath(path))
    create_dirs_to_output(directory)
    fd, temp_path = tempfile.mkstemp(dir=directory, suffix=".part")
    try:
        with os.fdopen(fd, mode) as handle:
            yield handle
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


@contextmanager
def open_output(
    path: str | os.PathLike | None, binary: bool = False
) -> Iterator[IO]:
    """Open a report file with `atomic_output`, or use the standard output if `path` is None."""
    if path is None:
        yield sys.stdout.buffer if binary else sys.stdout
    else:
        with atomic_output(path, "wb" if binary else "w") as handle:
            yield handle


def modify_first_line(
    input_path: str | os.PathLike, output_path: str | os.PathLike
) -> None:
    """
    Insert a missing length into a GenBank LOCUS line and save the result to a new file.
    This fixes PROKKA output that biopython refuses to parse.

    Parameters
    ----------
    input_path : str or os.PathLike
        The GenBank file to repair.
    output_path : str or os.PathLike
        Where the repaired copy is written.

    Returns
    -------
    None

    Notes
    -----
    If the first line contains "LOCUS" and "bp", "0 " is inserted before "bp".
    """

    with open(input_path, "r") as file:
        lines = file.readlines()

    if lines and "LOCUS" in lines[0]:
        first_line = lines[0]
        bp_index = first_line.find("bp")
        if bp_index != -1:
            lines[0] = first_line[:bp_index] + "0 " + first_line[bp_index:]

    with open(output_path, "w") as file:
        file.writelines(lines)

"""
Wrapper around the external multiple-alignment program.
"""

import logging
import os
import subprocess
import tempfile

from snipalign.config import ALIGNER, ALIGNER_TIMEOUT, WORK_DIR
from snipalign.file_processing import create_dirs_to_output
from snipalign.models import SequenceRecord
from snipalign.sequence_processing import read_fasta, write_fasta

ALIGNERS = ("clustalo", "mafft")
"""Supported alignment programs"""


class AlignerError(RuntimeError):
    """The external aligner failed or returned output that cannot be used."""


class ClustalAligner:
    """
    Multiple aligner for DNA sequences backed by Clustal Omega or MAFFT.

    Parameters
    ----------
    program : str, optional
        "clustalo" or "mafft". Default is `ALIGNER`.
    work_dir : str or os.PathLike, optional
        Directory for the temporary FASTA files. Created if missing. Default is `WORK_DIR`.
    timeout : float, optional
        Seconds to wait for the program. Default is `ALIGNER_TIMEOUT`.
    """

    def __init__(
        self,
        program: str = ALIGNER,
        work_dir: str | os.PathLike = WORK_DIR,
        timeout: float = ALIGNER_TIMEOUT,
    ):
        if program not in ALIGNERS:
            raise ValueError(
                f"Unknown aligner {program}. Must be one of {', '.join(ALIGNERS)}."
            )
        self.program = program
        self.work_dir = work_dir
        self.timeout = timeout
        create_dirs_to_output(work_dir)

    def _command(self, input_path: str, output_path: str) -> list[str]:
        if self.program == "mafft":
            return ["mafft", "--auto", "--quiet", input_path]
        return [
            "clustalo",
            "-i",
            input_path,
            "-o",
            output_path,
            "--outfmt=fa",
            "--force",
            "--seqtype=DNA",
            "--output-order=input-order",
        ]

    def align(self, records: list[SequenceRecord]) -> list[SequenceRecord]:
        """
        Align a list of sequences.

        Parameters
        ----------
        records : list of SequenceRecord
            Sequences to align. Labels must be unique.

        Returns
        -------
        list of SequenceRecord
            The gapped sequences, all of the same length, in input order and with the
            input comments.

        Raises
        ------
        AlignerError
            If the program is missing, fails, times out or returns unusable output.
        """

        fd, input_path = tempfile.mkstemp(prefix="align", suffix=".fa", dir=self.work_dir)
        output_path = f"{input_path}.aln"
        try:
            with os.fdopen(fd, "w") as handle:
                write_fasta(records, handle)
            command = self._command(input_path, output_path)
            logging.debug(f"Running {' '.join(command)}")
            try:
                result = subprocess.run(
                    command,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    timeout=self.timeout,
                )
            except FileNotFoundError as e:
                raise AlignerError(f"Aligner {self.program} not found: {e}") from e
            except subprocess.TimeoutExpired as e:
                raise AlignerError(
                    f"Aligner {self.program} did not finish in {self.timeout} seconds."
                ) from e
            if result.returncode != 0:
                raise AlignerError(
                    f"Aligner {self.program} failed with exit code {result.returncode}: "
                    f"{result.stderr.strip()}"
                )
            if self.program == "mafft":
                with open(output_path, "w") as handle:
                    handle.write(result.stdout)
            aligned = read_fasta(output_path)
        finally:
            for path in (input_path, output_path):
                if os.path.exists(path):
                    os.remove(path)

        return restore_order(records, aligned)


def restore_order(
    records: list[SequenceRecord], aligned: list[SequenceRecord]
) -> list[SequenceRecord]:
    """
    Put aligned sequences back in input order with their input comments.

    Raises
    ------
    AlignerError
        If a label is missing from the output or the rows differ in length.
    """

    by_label = {record.id: record for record in aligned}
    result = []
    for record in records:
        row = by_label.get(record.id)
        if row is None:
            raise AlignerError(f"Sequence {record.id} missing from aligner output.")
        result.append(SequenceRecord(record.id, record.comment, row.dna.upper()))
    if len({len(record.dna) for record in result}) > 1:
        raise AlignerError("Aligner returned sequences of unequal length.")

    return result

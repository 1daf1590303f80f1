"""
Stream read pairs from FASTQ files.

Reads are pulled one record at a time, so the whole stream is never held in
memory. Files ending in ``.gz`` are decompressed transparently.
"""

import logging
from itertools import zip_longest
from pathlib import Path
from typing import Iterator, Optional, Union

from Bio.SeqIO.QualityIO import FastqGeneralIterator

from ..pipeline_core.error_handling import MalformedInputError
from ..utils import smart_open
from .base import FastqRecord, ReadPair

logger = logging.getLogger(__name__)


def iter_fastq(path: Union[str, Path]) -> Iterator[FastqRecord]:
    """Yield the records of one FASTQ file.

    Raises
    ------
    MalformedInputError
        If a record cannot be parsed
    """
    with smart_open(str(path), "r") as in_handle:
        try:
            for name, seq, qual in FastqGeneralIterator(in_handle):
                yield FastqRecord(name, seq, qual)
        except ValueError as e:
            raise MalformedInputError(f"Unreadable FASTQ record in {path}: {e}") from e


def iter_read_pairs(
    read1_path: Union[str, Path], read2_path: Optional[Union[str, Path]] = None
) -> Iterator[ReadPair]:
    """Yield ReadPairs from a read 1 file and an optional read 2 file.

    Parameters
    ----------
    read1_path : str or Path
        FASTQ with the read 1 records
    read2_path : str or Path, optional
        FASTQ with the mates; omitted for single-ended lanes

    Yields
    ------
    ReadPair
        ``read2`` is None for single-ended data or once the read 2 file is
        exhausted; ``read1`` is None when the read 1 file ran out before the
        read 2 file, which the metrics runner rejects
    """
    if read2_path is None:
        for record in iter_fastq(read1_path):
            yield ReadPair(record)
        return

    logger.debug(f"Pairing {read1_path} with {read2_path}")
    for read1, read2 in zip_longest(iter_fastq(read1_path), iter_fastq(read2_path)):
        yield ReadPair(read1, read2)

"""Tests for the N base distribution accumulator."""

import numpy as np
import pytest

from postseq.metrics.base import FastqRecord, MetricAccumulator, ReadPair
from postseq.metrics.nbase import NBaseDistribution
from postseq.pipeline_core.error_handling import MalformedInputError


def pair(seq1, seq2=None):
    read2 = FastqRecord("r/2", seq2) if seq2 is not None else None
    return ReadPair(FastqRecord("r/1", seq1), read2)


def observe_all(acc, pairs):
    for p in pairs:
        acc.observe(p)
    return acc.finalize()


class TestNBaseDistribution:
    """Test per-position N counting and bad read classification."""

    def test_is_metric_accumulator(self):
        assert isinstance(NBaseDistribution(), MetricAccumulator)

    def test_single_ended_reads(self):
        """Two reads, one with a single N at position 2."""
        result = observe_all(NBaseDistribution(0.15), [pair("ACGT"), pair("ANGT")])

        assert result.name == "DistributionOfN"
        assert result.facts == {"Bad_Reads_Read1": "1"}
        assert result.plot.series == {"Read 1": ((1, 0.0), (2, 50.0), (3, 0.0), (4, 0.0))}
        assert "Read 2" not in result.plot.series
        assert result.plot.x_range == (0, 4)
        assert result.plot.y_range == (0, 100)

    def test_all_n_read(self):
        acc = NBaseDistribution(0.15)
        result = observe_all(acc, [pair("N" * 20)])

        assert result.facts["Bad_Reads_Read1"] == "1"
        assert acc.dist_read1.counts.tolist() == [1] * 20

    def test_mixed_single_and_paired_pairs(self):
        """Read 2 totals only count pairs that carry a mate."""
        acc = NBaseDistribution(0.15)
        result = observe_all(acc, [pair("ACGT"), pair("ACGN", "NCGT")])

        assert acc.total_reads_read1 == 2
        assert acc.total_reads_read2 == 1
        assert acc.dist_read1.counts[3] == 1
        assert acc.dist_read2.counts[0] == 1
        assert result.plot.series["Read 1"][3] == (4, 50.0)
        assert result.plot.series["Read 2"][0] == (1, 100.0)
        assert result.facts == {"Bad_Reads_Read1": "1", "Bad_Reads_Read2": "1"}

    def test_lowercase_n_counts(self):
        acc = NBaseDistribution()
        observe_all(acc, [pair("acnt", "nnGT")])

        assert acc.dist_read1.counts.tolist() == [0, 0, 1, 0]
        assert acc.dist_read2.counts.tolist() == [1, 1, 0, 0]

    def test_no_reads_returns_none(self):
        assert NBaseDistribution().finalize() is None

    def test_threshold_boundary_is_inclusive(self):
        """A read with exactly threshold * length N bases is bad."""
        acc = NBaseDistribution(0.25)
        observe_all(acc, [pair("NACG")])
        assert acc.bad_reads_read1 == 1

        acc = NBaseDistribution(0.26)
        observe_all(acc, [pair("NACG")])
        assert acc.bad_reads_read1 == 0

    def test_zero_threshold_marks_every_read_bad(self):
        acc = NBaseDistribution(0.0)
        observe_all(acc, [pair("ACGT"), pair("GGGG")])
        assert acc.bad_reads_read1 == 2

    def test_threshold_out_of_range(self):
        with pytest.raises(ValueError):
            NBaseDistribution(1.5)
        with pytest.raises(ValueError):
            NBaseDistribution(-0.1)

    def test_variable_read_lengths(self):
        """Positions beyond a short read's length are simply not counted."""
        result = observe_all(NBaseDistribution(), [pair("NA"), pair("ACGTN")])

        assert result.plot.series["Read 1"] == (
            (1, 50.0),
            (2, 0.0),
            (3, 0.0),
            (4, 0.0),
            (5, 50.0),
        )
        assert result.plot.x_range == (0, 5)

    def test_read2_does_not_touch_read1_histogram(self):
        acc = NBaseDistribution()
        observe_all(acc, [pair("ACGT", "NNNNNNNN")])

        assert acc.dist_read1.counts.tolist() == [0, 0, 0, 0]
        assert acc.dist_read2.counts.tolist() == [1] * 8
        assert acc.max_len == 8

    def test_empty_read2_is_treated_as_absent(self):
        result = observe_all(NBaseDistribution(), [pair("ACGT", "")])
        assert result.facts == {"Bad_Reads_Read1": "0"}

    def test_empty_read1_counts_as_bad(self):
        """An empty read satisfies 0 >= threshold * 0 but leaves the histogram alone."""
        acc = NBaseDistribution()
        result = observe_all(acc, [pair(""), pair("NNNN")])

        assert acc.total_reads_read1 == 2
        assert result.facts["Bad_Reads_Read1"] == "2"
        assert acc.max_len == 4
        assert result.plot.series["Read 1"][0] == (1, 50.0)

    def test_single_empty_read1(self):
        acc = NBaseDistribution()
        result = observe_all(acc, [pair("")])

        assert result.facts == {"Bad_Reads_Read1": "1"}
        assert acc.max_len == 0
        assert len(acc.dist_read1) == 0

    def test_missing_read1_rejected(self):
        acc = NBaseDistribution()
        with pytest.raises(MalformedInputError):
            acc.observe(ReadPair(None, FastqRecord("r/2", "ACGT")))

    def test_finalize_is_idempotent_and_closes(self):
        acc = NBaseDistribution()
        acc.observe(pair("ACGN"))
        first = acc.finalize()

        assert acc.finalize() is first
        with pytest.raises(RuntimeError):
            acc.observe(pair("ACGT"))

    def test_percentages_within_bounds(self):
        rng = np.random.default_rng(7)
        reads = ["".join(rng.choice(list("ACGTN"), size=rng.integers(1, 30))) for _ in range(200)]
        result = observe_all(NBaseDistribution(), [pair(r) for r in reads])

        values = [v for _, v in result.plot.series["Read 1"]]
        assert all(0.0 <= v <= 100.0 for v in values)
        assert int(result.facts["Bad_Reads_Read1"]) <= 200

    def test_same_stream_same_result(self):
        reads = [pair("ANGT", "NNAA"), pair("ACGT"), pair("NNNN", "ACGT")]
        assert observe_all(NBaseDistribution(), reads) == observe_all(NBaseDistribution(), reads)

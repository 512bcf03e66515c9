import pytest

from doc_rectifier.exceptions import ParallelExecutionError
from doc_rectifier.parallel import default_workers, parallel_rows, split_rows


def test_split_rows_covers_every_row_once():
    bands = split_rows(101, 4)
    assert len(bands) == 4
    assert bands[0][0] == 0 and bands[-1][1] == 101
    for (_, stop), (start, _) in zip(bands, bands[1:]):
        assert stop == start


def test_split_rows_small_inputs():
    assert split_rows(10, 8) == [(0, 10)]
    assert split_rows(0, 4) == []


def test_parallel_rows_returns_results_in_band_order():
    results = parallel_rows(200, lambda y0, y1: (y0, y1), workers=4)
    assert results == split_rows(200, 4)


def test_parallel_rows_writes_disjoint_bands():
    out = [None] * 64

    def kernel(y0, y1):
        for y in range(y0, y1):
            out[y] = y * 2

    parallel_rows(64, kernel, workers=3)
    assert out == [y * 2 for y in range(64)]


def test_worker_failure_is_fatal():
    def kernel(y0, y1):
        if y0 > 0:
            raise ValueError("boom")

    with pytest.raises(ParallelExecutionError) as excinfo:
        parallel_rows(100, kernel, workers=4, stage="test stage")
    assert "test stage" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_default_workers_bounds():
    assert 2 <= default_workers() <= 8

"""
Row-band data parallelism shared by every per-pixel kernel.

A kernel is any callable ``kernel(y0, y1)`` that handles rows ``[y0, y1)``
and writes only to output rows inside that band. Results come back in band
order, so reductions over them are deterministic.
"""
import logging
import multiprocessing as mp
from concurrent.futures import ThreadPoolExecutor

from doc_rectifier.exceptions import ParallelExecutionError

logger = logging.getLogger(__name__)

MIN_BAND_ROWS = 8


def default_workers() -> int:
    """Use 75% of available cores, but at least 2 and at most 8"""
    cpu_count = mp.cpu_count()
    return max(2, min(8, int(cpu_count * 0.75)))


def split_rows(height, workers, min_rows=MIN_BAND_ROWS):
    """Split [0, height) into at most ``workers`` contiguous bands."""
    if height <= 0:
        return []
    workers = max(1, int(workers or 1))
    band_count = max(1, min(workers, height // max(1, min_rows)))
    base, extra = divmod(height, band_count)
    bands = []
    start = 0
    for index in range(band_count):
        stop = start + base + (1 if index < extra else 0)
        bands.append((start, stop))
        start = stop
    return bands


def parallel_rows(height, kernel, workers=None, stage="kernel"):
    """
    Run ``kernel`` over row bands and return the per-band results in order.

    Raises ParallelExecutionError if a band fails or the bands do not cover
    every row exactly once after the join.
    """
    workers = workers or default_workers()
    bands = split_rows(height, workers)
    try:
        if len(bands) <= 1:
            results = [kernel(y0, y1) for y0, y1 in bands]
        else:
            with ThreadPoolExecutor(max_workers=min(workers, len(bands))) as executor:
                futures = [executor.submit(kernel, y0, y1) for y0, y1 in bands]
                results = [future.result() for future in futures]
    except ParallelExecutionError:
        raise
    except Exception as exc:
        raise ParallelExecutionError(f"{stage}: worker failed: {exc}") from exc

    covered = sum(y1 - y0 for y0, y1 in bands)
    if len(results) != len(bands) or covered != max(height, 0):
        raise ParallelExecutionError(
            f"{stage}: {len(results)}/{len(bands)} bands completed, {covered}/{height} rows covered")
    logger.debug("%s: %d rows in %d bands", stage, height, len(bands))
    return results

import logging

import numpy as np

from doc_rectifier.exceptions import ConfigurationError
from doc_rectifier.parallel import parallel_rows

logger = logging.getLogger(__name__)

SOBEL_KERNEL = np.array([[-1, -2, -1],
                         [0, 0, 0],
                         [1, 2, 1]], dtype=np.float64)
HIST_SIZE = 256
MEDIAN_PASSES = 3


def _neighbourhood_stack(padded, y0, y1, width):
    """3x3 neighbourhoods of rows [y0, y1) from a NaN-padded float image, shape (9, rows, width)."""
    return np.stack([padded[y0 + 1 + dy:y1 + 1 + dy, 1 + dx:width + 1 + dx]
                     for dy in (-1, 0, 1) for dx in (-1, 0, 1)])


def _median_of_stack(stack):
    """
    Median over axis 0, ignoring NaN entries (missing neighbours at the border).

    Even counts average the two middle values; odd counts take the element at
    index ceil(n/2), one past the textbook median.
    """
    ordered = np.sort(stack, axis=0)
    count = np.sum(~np.isnan(stack), axis=0)
    half = count // 2
    odd_index = np.minimum((count + 1) // 2, count - 1)
    lower = np.take_along_axis(ordered, np.maximum(half - 1, 0)[None], axis=0)[0]
    upper = np.take_along_axis(ordered, half[None], axis=0)[0]
    odd = np.take_along_axis(ordered, odd_index[None], axis=0)[0]
    median = np.where(count % 2 == 0, (lower + upper) / 2, odd)
    return np.floor(median).astype(np.uint8)


def _padded(image):
    padded = np.full((image.shape[0] + 2, image.shape[1] + 2), np.nan)
    padded[1:-1, 1:-1] = image
    return padded


def median_filter(image, workers=None):
    """3x3 median smoothing; returns a new buffer."""
    height, width = image.shape
    padded = _padded(image)
    result = np.empty_like(image)

    def kernel(y0, y1):
        result[y0:y1] = _median_of_stack(_neighbourhood_stack(padded, y0, y1, width))

    parallel_rows(height, kernel, workers, stage="median filter")
    return result


def median_cleanup(image, workers=None):
    """Replace pixels that are exactly 0 (unfilled by warping) with their neighbourhood median."""
    height, width = image.shape
    padded = _padded(image)
    result = np.empty_like(image)

    def kernel(y0, y1):
        band = image[y0:y1]
        holes = band == 0
        if not holes.any():
            result[y0:y1] = band
            return
        median = _median_of_stack(_neighbourhood_stack(padded, y0, y1, width))
        result[y0:y1] = np.where(holes, median, band)

    parallel_rows(height, kernel, workers, stage="median cleanup")
    return result


def _validate_kernel(kernel):
    kernel = np.asarray(kernel, dtype=np.float64)
    if kernel.ndim != 2 or kernel.shape[0] != kernel.shape[1] or kernel.shape[0] % 2 != 1:
        raise ConfigurationError(f"The matrix is not set correctly: shape {kernel.shape}")
    return kernel


def gradient_edge_detect(image, kernel=SOBEL_KERNEL, workers=None):
    """
    Gradient magnitude with ``kernel`` and its transpose.

    Only pixels at least half a kernel away from the border are computed, the
    rest stay 0.
    """
    sx = _validate_kernel(kernel)
    sy = sx.T
    dim = sx.shape[0]
    half = dim // 2
    height, width = image.shape
    source = image.astype(np.float64)
    result = np.zeros_like(image)
    if height < dim or width < dim:
        return result

    def kernel_rows(y0, y1):
        start, stop = max(y0, half), min(y1, height - half)
        if start >= stop:
            return
        gx = np.zeros((stop - start, width - 2 * half))
        gy = np.zeros_like(gx)
        for i in range(-half, half + 1):
            for j in range(-half, half + 1):
                window = source[start + i:stop + i, half + j:width - half + j]
                gx += np.trunc(window * sx[i + half, j + half])
                gy += np.trunc(window * sy[i + half, j + half])
        magnitude = np.sqrt(gx * gx + gy * gy)
        result[start:stop, half:width - half] = np.clip(magnitude, 0, 255).astype(np.uint8)

    parallel_rows(height, kernel_rows, workers, stage="gradient")
    return result


def make_histogram(image):
    return np.bincount(image.ravel(), minlength=HIST_SIZE)[:HIST_SIZE]


def otsu_threshold(image):
    """
    Otsu threshold: the t maximising w1*(1-w1)*(mu1-mu2)^2 where the lower class
    holds intensities below t. Ties keep the lowest t.
    """
    hist = make_histogram(image).astype(np.float64)
    total = hist.sum()
    intensity_total = np.dot(np.arange(HIST_SIZE), hist)
    # running sums over [0, t)
    count_below = np.concatenate(([0.0], np.cumsum(hist)[:-1]))
    sum_below = np.concatenate(([0.0], np.cumsum(np.arange(HIST_SIZE) * hist)[:-1]))
    valid = (count_below > 0) & (count_below < total)
    if not valid.any():
        value = int(np.flatnonzero(hist)[0]) if total else 0
        return min(value + 1, HIST_SIZE - 1)
    with np.errstate(divide='ignore', invalid='ignore'):
        w1 = count_below / total
        mu1 = sum_below / count_below
        mu2 = (intensity_total - sum_below) / (total - count_below)
        sigma = w1 * (1 - w1) * (mu1 - mu2) ** 2
    sigma = np.where(valid, sigma, -1.0)
    return int(np.argmax(sigma))


def binarize(image, threshold, workers=None):
    """0 for pixels strictly below ``threshold``, 255 otherwise."""
    height = image.shape[0]
    result = np.empty_like(image)

    def kernel(y0, y1):
        result[y0:y1] = np.where(image[y0:y1] < threshold, 0, 255).astype(np.uint8)

    parallel_rows(height, kernel, workers, stage="binarize")
    return result


def filter_working_image(working, workers=None, passes=MEDIAN_PASSES, kernel=SOBEL_KERNEL):
    """Median passes, gradient magnitude, then Otsu binarisation into an edge map."""
    smoothed = working
    for _ in range(passes):
        smoothed = median_filter(smoothed, workers)
    gradient = gradient_edge_detect(smoothed, kernel, workers)
    threshold = otsu_threshold(working)
    logger.debug("Otsu threshold for edge map: %d", threshold)
    return binarize(gradient, threshold, workers)

"""Time-series splitters.

CRITICAL: Respects temporal order - no shuffling, no future data in training.

Strategies:
- Chronological: contiguous train/validation/test blocks by ratio
- Stratified: value-binned, each bin split chronologically
- Rolling windows: fixed-length windows advanced by a stride
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from tsforecast.core.config import get_settings
from tsforecast.core.exceptions import InsufficientDataError, ValidationError
from tsforecast.core.logging import get_logger
from tsforecast.features.featuresets.schemas import Feature
from tsforecast.features.validation.schemas import DataSplit, RollingWindow, SplitPart

logger = get_logger(__name__)

RATIO_TOLERANCE = 1e-4
MAX_STRATIFIED_BINS = 10
MIN_STRATIFIED_POINTS = 10


def validate_split_ratio(split_ratio: Sequence[float]) -> tuple[float, float, float]:
    """Check a train/validation/test ratio triple.

    Args:
        split_ratio: Three non-negative ratios.

    Returns:
        The ratios as a tuple.

    Raises:
        ValidationError: If there are not three ratios, any is negative, or
            they do not sum to 1 within 1e-4.
    """
    if len(split_ratio) != 3:
        raise ValidationError(
            "Split ratio must have 3 values", details={"split_ratio": list(split_ratio)}
        )
    if any(r < 0 for r in split_ratio):
        raise ValidationError(
            "Split ratios must be non-negative", details={"split_ratio": list(split_ratio)}
        )
    if abs(sum(split_ratio) - 1) > RATIO_TOLERANCE:
        raise ValidationError(
            "Split ratio must sum to 1", details={"split_ratio": list(split_ratio)}
        )
    train, validation, test = split_ratio
    return float(train), float(validation), float(test)


def _take(
    time_values: Sequence[str],
    values: Sequence[float],
    features: Sequence[Feature],
    indices: Sequence[int],
) -> SplitPart:
    return SplitPart(
        time_values=[time_values[i] for i in indices],
        values=[values[i] for i in indices],
        features=[
            f.model_copy(update={"values": [f.values[i] for i in indices]}) for f in features
        ],
    )


def split_time_series_data(
    time_values: Sequence[str],
    values: Sequence[float],
    features: Sequence[Feature] = (),
    split_ratio: Sequence[float] | None = None,
) -> DataSplit:
    """Split a series into contiguous train/validation/test blocks.

    Cut points are floor(n * r0) and floor(n * r0) + floor(n * r1); the test
    block takes the remainder. Features are sliced alongside.

    Example (n=100, ratio 0.7/0.15/0.15):
        train [0..70), validation [70..85), test [85..100)

    Args:
        time_values: Observed timestamps.
        values: Observed values.
        features: Features aligned with the series.
        split_ratio: Train/validation/test ratios (settings default when None).

    Returns:
        DataSplit whose parts concatenate back to the input.

    Raises:
        ValidationError: If the ratios are invalid.
    """
    ratio = validate_split_ratio(split_ratio or get_settings().validation_default_split_ratio)
    n = len(values)
    train_end = int(np.floor(n * ratio[0]))
    validation_end = train_end + int(np.floor(n * ratio[1]))

    split = DataSplit(
        train=_take(time_values, values, features, range(0, train_end)),
        validation=_take(time_values, values, features, range(train_end, validation_end)),
        test=_take(time_values, values, features, range(validation_end, n)),
    )
    logger.debug(
        "validation.data_split",
        n_points=n,
        train=len(split.train),
        validation=len(split.validation),
        test=len(split.test),
    )
    return split


def stratified_split(
    time_values: Sequence[str],
    values: Sequence[float],
    features: Sequence[Feature] = (),
    split_ratio: Sequence[float] | None = None,
) -> DataSplit:
    """Value-binned split that keeps temporal order inside each part.

    Values are assigned to min(10, n // 10) equal-width bins. Each bin's
    indices are taken in time order and divided by the ratios; each part is
    then re-sorted chronologically. Missing values are left out.

    Args:
        time_values: Observed timestamps.
        values: Observed values.
        features: Features aligned with the series.
        split_ratio: Train/validation/test ratios (settings default when None).

    Returns:
        DataSplit with the distribution of values preserved in each part.

    Raises:
        ValidationError: If the ratios are invalid.
        InsufficientDataError: If there are fewer than 10 points.
    """
    ratio = validate_split_ratio(split_ratio or get_settings().validation_default_split_ratio)
    n = len(values)
    if n < MIN_STRATIFIED_POINTS:
        raise InsufficientDataError(
            f"Stratified split needs at least {MIN_STRATIFIED_POINTS} points, got {n}",
            details={"n_points": n},
        )

    y = np.array([np.nan if v is None else v for v in values], dtype=np.float64)
    present = np.flatnonzero(~np.isnan(y))
    if len(present) == 0:
        raise InsufficientDataError("Stratified split needs at least one observed value")
    num_bins = min(MAX_STRATIFIED_BINS, n // 10)
    low, high = float(np.min(y[present])), float(np.max(y[present]))
    bin_size = (high - low) / num_bins

    bins: list[list[int]] = [[] for _ in range(num_bins)]
    for i in present:
        index = 0 if bin_size == 0 else int(np.floor((y[i] - low) / bin_size))
        bins[min(index, num_bins - 1)].append(int(i))

    train_idx: list[int] = []
    validation_idx: list[int] = []
    test_idx: list[int] = []
    for members in bins:
        train_count = int(np.floor(len(members) * ratio[0]))
        validation_count = int(np.floor(len(members) * ratio[1]))
        train_idx.extend(members[:train_count])
        validation_idx.extend(members[train_count : train_count + validation_count])
        test_idx.extend(members[train_count + validation_count :])

    return DataSplit(
        train=_take(time_values, values, features, sorted(train_idx)),
        validation=_take(time_values, values, features, sorted(validation_idx)),
        test=_take(time_values, values, features, sorted(test_idx)),
    )


def create_rolling_windows(
    time_values: Sequence[str],
    values: Sequence[float],
    window_size: int,
    stride: int = 1,
) -> list[RollingWindow]:
    """Fixed-length windows starting at 0, stride, 2*stride, ...

    Args:
        time_values: Observed timestamps.
        values: Observed values.
        window_size: Observations per window.
        stride: Step between window starts.

    Returns:
        Windows in chronological order.

    Raises:
        ValidationError: If window_size or stride is not positive.
        InsufficientDataError: If window_size is not smaller than the series.
    """
    if window_size < 1 or stride < 1:
        raise ValidationError(
            "window_size and stride must be positive",
            details={"window_size": window_size, "stride": stride},
        )
    n = len(values)
    if window_size >= n:
        raise InsufficientDataError(
            "Window size must be smaller than the data length",
            details={"window_size": window_size, "n_points": n},
        )
    return [
        RollingWindow(
            time_values=list(time_values[start : start + window_size]),
            values=list(values[start : start + window_size]),
            start_index=start,
            end_index=start + window_size - 1,
        )
        for start in range(0, n - window_size + 1, stride)
    ]

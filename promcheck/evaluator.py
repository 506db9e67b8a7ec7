"""Threshold evaluation of scraped samples."""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, List, Sequence
import logging

from promcheck.config import CheckConfig, LabelFilter, Thresholds
from promcheck.series import Sample

logger = logging.getLogger(__name__)


class CheckState(IntEnum):
    """Check states; the integer is the process exit code."""
    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass
class CheckResult:
    """Outcome of one check run."""
    state: CheckState
    messages: List[str] = field(default_factory=list)
    failures: int = 0
    matched: int = 0


def count_label_matches(sample: Sample, label_filters: Iterable[LabelFilter]) -> int:
    """Number of filters whose label name and value both appear on the sample."""
    return sum(1 for label_filter in label_filters if label_filter.matches(sample.labels))


def evaluate(
    samples: Iterable[Sample],
    metric: str,
    label_filters: Sequence[LabelFilter],
    thresholds: Thresholds,
) -> CheckResult:
    """
    Evaluate every sample named `metric` against filters and thresholds.

    Each condition is checked and counted on its own: a sample that misses a
    label filter still gets its value compared. Any failure makes the result
    CRITICAL.

    A metric that is not exposed at all yields OK. Nothing is compared in
    that case and absence is not treated as a failure.
    """
    messages: List[str] = []
    failures = 0
    matched = 0

    for sample in samples:
        if sample.name != metric:
            continue
        matched += 1
        series = sample.render()

        if count_label_matches(sample, label_filters) < len(label_filters):
            messages.append(f"Metric {series} does not match all specified labels")
            failures += 1

        if thresholds.value is not None and sample.value != thresholds.value:
            messages.append(
                f"Metric {series} is at {sample.value:f}. "
                f"Check require value {thresholds.value:f}"
            )
            failures += 1

        if thresholds.minimum is not None and sample.value < thresholds.minimum:
            messages.append(
                f"Metric {series} is at {sample.value:f}. "
                f"Check require minimum {thresholds.minimum:f}"
            )
            failures += 1

        if thresholds.maximum is not None and sample.value > thresholds.maximum:
            messages.append(
                f"Metric {series} is at {sample.value:f}. "
                f"Check require maximum {thresholds.maximum:f}"
            )
            failures += 1

    logger.info(f"Metric {metric}: {matched} matching samples, {failures} failures")
    if matched == 0:
        logger.warning(f"Metric {metric} not found in exposition, reporting OK")

    if failures > 0:
        return CheckResult(CheckState.CRITICAL, messages, failures, matched)

    messages.append(f"Metric {metric} is within required value")
    return CheckResult(CheckState.OK, messages, failures, matched)


def evaluate_config(samples: Iterable[Sample], config: CheckConfig) -> CheckResult:
    """Evaluate samples against a validated check configuration."""
    return evaluate(samples, config.metric, config.labels, config.thresholds)

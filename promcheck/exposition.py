"""Prometheus text exposition parsing into flat samples."""
from typing import List, Optional
import logging
import time

from prometheus_client.metrics_core import Metric
from prometheus_client.parser import text_string_to_metric_families

from promcheck.series import NAME_LABEL, Sample

logger = logging.getLogger(__name__)


class ExpositionParseError(ValueError):
    """The exposition body is not valid Prometheus text format."""


class ExtractionError(ValueError):
    """A single metric family could not be turned into samples."""


def decode_exposition(data: bytes) -> str:
    """Decode a response body as UTF-8, whatever the Content-Type says."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ExpositionParseError(f"metrics exposition is not valid UTF-8: {e}") from e


def extract_samples(family: Metric, timestamp: float) -> List[Sample]:
    """
    Convert one parsed metric family into samples.

    The `__name__` label holds the sample name (`foo_total`, `foo_bucket`,
    ...) rather than the family name, so it matches the series name
    Prometheus would store.

    Args:
        family: Metric family produced by the text parser
        timestamp: Wall-clock time stamped on samples without one

    Returns:
        Samples of the family in exposition order
    """
    samples = []
    for raw in family.samples:
        if NAME_LABEL in raw.labels:
            raise ExtractionError(
                f"sample {raw.name} of family {family.name} uses reserved label {NAME_LABEL}"
            )
        if isinstance(raw.value, bool) or not isinstance(raw.value, (int, float)):
            raise ExtractionError(
                f"sample {raw.name} of family {family.name} has non numeric value {raw.value!r}"
            )

        labels = {NAME_LABEL: raw.name}
        labels.update(raw.labels)
        samples.append(Sample(
            labels=labels,
            value=float(raw.value),
            timestamp=_timestamp_seconds(raw.timestamp, timestamp),
        ))
    return samples


def _timestamp_seconds(raw_timestamp, default: float) -> float:
    if raw_timestamp is None:
        return default
    # OpenMetrics style Timestamp objects
    if hasattr(raw_timestamp, "sec"):
        return raw_timestamp.sec + raw_timestamp.nsec / 1e9
    return float(raw_timestamp)


def parse_exposition(text: str, now: Optional[float] = None) -> List[Sample]:
    """
    Parse a text exposition body into a flat list of samples.

    Malformed syntax fails the whole parse. A family the extractor rejects is
    skipped and parsing carries on with the next one; this best-effort policy
    means a single odd family never hides the rest of the endpoint.

    The prometheus_client parser is more lenient than the Prometheus server:
    extra trailing tokens (`foo 1 2 3`) are accepted and the last one is read
    as the timestamp.

    Args:
        text: Exposition body
        now: Timestamp for samples without an explicit one (defaults to
            the current time, taken once for the whole body)

    Returns:
        All samples, family by family in body order
    """
    if now is None:
        now = time.time()

    samples: List[Sample] = []
    families = 0
    skipped = 0

    try:
        for family in text_string_to_metric_families(text):
            families += 1
            try:
                samples.extend(extract_samples(family, now))
            except ExtractionError as e:
                skipped += 1
                logger.debug(f"Skipping metric family {family.name}: {e}")
    except (ValueError, IndexError) as e:
        raise ExpositionParseError(f"could not parse metrics exposition: {e}") from e

    logger.debug(
        f"Parsed {len(samples)} samples from {families} families "
        f"({skipped} skipped)"
    )
    return samples

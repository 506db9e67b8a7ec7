#!/usr/bin/env python3
"""Tests for exposition parsing."""
import pytest
from prometheus_client.metrics_core import Metric

from promcheck import exposition
from promcheck.exposition import (
    ExpositionParseError,
    ExtractionError,
    decode_exposition,
    extract_samples,
    parse_exposition,
)
from promcheck.series import Sample


BODY = """\
# HELP http_requests_total Total HTTP requests.
# TYPE http_requests_total counter
http_requests_total{method="GET",code="200"} 42
http_requests_total{method="POST",code="500"} 3
# HELP cpu_usage CPU usage ratio.
# TYPE cpu_usage gauge
cpu_usage{host="a"} 0.75
# TYPE up gauge
up 1
"""


def test_parse_samples_in_body_order():
    samples = parse_exposition(BODY, now=1000.0)

    assert [s.name for s in samples] == [
        "http_requests_total",
        "http_requests_total",
        "cpu_usage",
        "up",
    ]
    assert samples[0].labels == {"__name__": "http_requests_total", "method": "GET", "code": "200"}
    assert samples[0].value == 42.0
    assert samples[2].value == 0.75
    assert samples[3].labels == {"__name__": "up"}


def test_missing_timestamp_stamped_with_now():
    samples = parse_exposition(BODY, now=1234.5)
    assert all(s.timestamp == 1234.5 for s in samples)


def test_explicit_timestamp_in_seconds():
    samples = parse_exposition("up 1 1700000000000\n", now=5.0)
    assert len(samples) == 1
    assert samples[0].timestamp == 1700000000.0


def test_histogram_samples_keep_their_own_names():
    body = """\
# TYPE latency_seconds histogram
latency_seconds_bucket{le="0.1"} 2
latency_seconds_bucket{le="+Inf"} 5
latency_seconds_sum 1.5
latency_seconds_count 5
"""
    names = [s.name for s in parse_exposition(body, now=0.0)]
    assert names == [
        "latency_seconds_bucket",
        "latency_seconds_bucket",
        "latency_seconds_sum",
        "latency_seconds_count",
    ]


def test_empty_body():
    assert parse_exposition("", now=0.0) == []


def test_truncated_line_is_parse_error():
    body = '# TYPE http_requests_total counter\nhttp_requests_total{method="GET"}\n'
    with pytest.raises(ExpositionParseError):
        parse_exposition(body, now=0.0)


def test_bad_value_is_parse_error():
    with pytest.raises(ExpositionParseError):
        parse_exposition("up not_a_number\n", now=0.0)


def test_extract_rejects_reserved_label():
    family = Metric("weird", "", "gauge")
    family.add_sample("weird", {"__name__": "other"}, 1.0)
    with pytest.raises(ExtractionError):
        extract_samples(family, 0.0)


def test_extract_rejects_non_numeric_value():
    family = Metric("weird", "", "gauge")
    family.add_sample("weird", {}, "1")
    with pytest.raises(ExtractionError):
        extract_samples(family, 0.0)


def test_rejected_family_is_skipped(monkeypatch):
    """One bad family does not hide the others."""
    good = Metric("up", "", "gauge")
    good.add_sample("up", {"job": "node"}, 1.0)
    bad = Metric("weird", "", "gauge")
    bad.add_sample("weird", {"__name__": "other"}, 1.0)
    last = Metric("cpu_usage", "", "gauge")
    last.add_sample("cpu_usage", {"host": "a"}, 0.5)

    monkeypatch.setattr(
        exposition, "text_string_to_metric_families", lambda text: iter([good, bad, last])
    )
    samples = parse_exposition("ignored", now=7.0)

    assert samples == [
        Sample(labels={"__name__": "up", "job": "node"}, value=1.0, timestamp=7.0),
        Sample(labels={"__name__": "cpu_usage", "host": "a"}, value=0.5, timestamp=7.0),
    ]


def test_render():
    sample = Sample(labels={"__name__": "cpu_usage", "host": "a", "core": "0"}, value=0.75, timestamp=0.0)
    assert sample.render() == 'cpu_usage{core="0", host="a"}'

    sample = Sample(labels={"__name__": "up"}, value=1.0, timestamp=0.0)
    assert sample.render() == "up"

    sample = Sample(labels={"__name__": "info", "path": 'C:\\ "x"'}, value=1.0, timestamp=0.0)
    assert sample.render() == 'info{path="C:\\\\ \\"x\\""}'


def test_extra_trailing_tokens_accepted():
    """The parser reads the first token as value and ignores the rest."""
    samples = parse_exposition("foo 1 2 3\n", now=0.0)
    assert len(samples) == 1
    assert samples[0].value == 1.0


def test_decode_exposition():
    assert decode_exposition('up{site="café"} 1\n'.encode("utf-8")) == 'up{site="café"} 1\n'
    with pytest.raises(ExpositionParseError):
        decode_exposition(b"up{site=\"caf\xe9\"} 1\n")

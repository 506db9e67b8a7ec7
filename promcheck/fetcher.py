"""Scrape a metrics endpoint over HTTP(S) using requests."""
from typing import List, Optional
import logging

import requests
from requests.auth import HTTPBasicAuth

from promcheck.config import CheckConfig
from promcheck.exposition import ExpositionParseError, decode_exposition, parse_exposition
from promcheck.series import Sample

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """The exposition could not be retrieved or parsed."""


class ExpositionFetcher:
    """Performs the single GET of a check run and parses the body."""

    def __init__(self, config: CheckConfig, session: requests.Session):
        self.config = config
        self.session = session

    def request_options(self) -> dict:
        """Keyword arguments for the GET: auth, TLS and timeout."""
        tls = self.config.tls
        options = {"timeout": self.config.timeout}

        if self.config.auth.enabled:
            options["auth"] = HTTPBasicAuth(self.config.auth.user, self.config.auth.password)
        elif self.config.auth.user or self.config.auth.password:
            logger.debug("Only one of user/password set, not using basic auth")

        if tls.client_cert_enabled:
            options["cert"] = (tls.cert, tls.key)
            options["verify"] = tls.cacert

        # Skip-verify wins over any CA bundle
        if tls.insecure_skip_verify:
            options["verify"] = False

        return options

    def fetch(self) -> List[Sample]:
        """Fetch and parse the exposition, raising FetchError on any failure."""
        url = self.config.url
        logger.info(f"Scraping {url}")

        try:
            with self.session.get(url, **self.request_options()) as response:
                if response.status_code != 200:
                    raise FetchError(
                        f"exporter returned non OK HTTP response status: "
                        f"{response.status_code} {response.reason}"
                    )
                body = response.content
        except requests.RequestException as e:
            raise FetchError(str(e)) from e

        try:
            samples = parse_exposition(decode_exposition(body))
        except ExpositionParseError as e:
            raise FetchError(str(e)) from e

        logger.info(f"Scraped {len(samples)} samples from {url}")
        return samples


def fetch_samples(config: CheckConfig, session: Optional[requests.Session] = None) -> List[Sample]:
    """Fetch the configured endpoint and return its samples."""
    if session is not None:
        return ExpositionFetcher(config, session).fetch()

    with requests.Session() as own_session:
        return ExpositionFetcher(config, own_session).fetch()

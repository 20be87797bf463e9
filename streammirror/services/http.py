import logging
from typing import Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from streammirror.exceptions import FetchError
from streammirror.interfaces import BaseFetcher

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "stream-mirror/0.1"


def build_session(
    user_agent: str = DEFAULT_USER_AGENT,
    headers: Optional[Dict[str, str]] = None,
    retries: int = 2,
) -> requests.Session:
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods={"GET"},
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": user_agent})
    if headers:
        session.headers.update(headers)
    return session


class HttpFetcher(BaseFetcher):
    """Descarga recursos por HTTP(S) usando una sesión de requests."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        verify: bool = True,
        retries: int = 2,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.verify = verify
        self.session = session or build_session(user_agent, headers, retries)

    def fetch(self, url: str) -> bytes:
        logger.debug(f"GET {url}")
        try:
            response = self.session.get(url, timeout=self.timeout, verify=self.verify)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise FetchError(url, f"estado HTTP {status}") from e
        except requests.RequestException as e:
            raise FetchError(url, str(e)) from e
        return response.content

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False

"""HTTP client for the TestRail API v2.

One ``TestRailClient`` talks to one TestRail account. Every non-2xx response
raises ``TestRailAPIError`` carrying the status line and response body so
callers can classify it (see ``trailer.testrail.outcome``).
"""
from __future__ import annotations
import base64
from typing import Any, Dict, Iterable, List, Optional

import requests

from trailer.config import Config, get_config
from trailer.errors import ConfigurationError, TestRailAPIError
from trailer.utils.logger import log_api_response, log_debug, log_error

API_PREFIX = "index.php?/api/v2/"


class TestRailClient:
    """Synchronous TestRail API client with connection pooling."""

    __test__ = False

    def __init__(self, base_url: str, username: str, token: str, *, timeout: int = 30,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self._session.close()

    def _headers(self) -> Dict[str, str]:
        auth_string = f"{self.username}:{self.token}"
        auth_encoded = base64.b64encode(auth_string.encode()).decode()
        return {"Authorization": f"Basic {auth_encoded}", "Content-Type": "application/json"}

    def _url(self, uri: str) -> str:
        # Pagination links come back as "/api/v2/...".
        uri = uri.lstrip("/")
        if uri.startswith("api/v2/"):
            uri = uri[len("api/v2/"):]
        return f"{self.base_url}/{API_PREFIX}{uri}"

    def _request(self, method: str, uri: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = self._url(uri)
        try:
            resp = self._session.request(method, url, headers=self._headers(), json=payload,
                                         timeout=self.timeout)
        except requests.RequestException as e:
            log_error("TestRail request failed", error=str(e), uri=uri)
            raise TestRailAPIError(f"TestRail request to {uri} failed: {e}") from e

        if not resp.ok:
            body = resp.text[:2000]
            log_error("TestRail API error", status_code=resp.status_code, uri=uri, response=body[:500])
            raise TestRailAPIError(
                f"{resp.status_code} {resp.reason}: {body}",
                status_code=resp.status_code,
                body=body,
            )

        log_api_response(f"TestRail {method} {uri.split('&')[0]}", resp.status_code)
        if not resp.content:
            return None
        return resp.json()

    def _get_all(self, uri: str, key: str) -> List[Dict[str, Any]]:
        """Follow ``_links.next`` until exhausted.

        Servers before TestRail 6.7 return a bare list instead of a page.
        """
        items: List[Dict[str, Any]] = []
        next_uri: Optional[str] = uri
        while next_uri:
            data = self._request("GET", next_uri)
            if isinstance(data, list):
                items.extend(data)
                break
            items.extend((data or {}).get(key) or [])
            next_uri = ((data or {}).get("_links") or {}).get("next")
        log_debug("TestRail collection fetched", uri=uri, count=len(items))
        return items

    def get_sections(self, project_id: int, suite_id: int) -> List[Dict[str, Any]]:
        return self._get_all(f"get_sections/{project_id}&suite_id={suite_id}", "sections")

    def get_cases(self, project_id: int, suite_id: int) -> List[Dict[str, Any]]:
        return self._get_all(f"get_cases/{project_id}&suite_id={suite_id}", "cases")

    def get_tests(self, run_id: int) -> List[Dict[str, Any]]:
        """Tests of a run; each carries the ``case_id`` it instantiates."""
        return self._get_all(f"get_tests/{run_id}", "tests")

    def add_run(self, project_id: int, suite_id: int, name: str, case_ids: Iterable[int],
                include_all: bool = False) -> Dict[str, Any]:
        payload = {
            "suite_id": suite_id,
            "name": name,
            "include_all": include_all,
            "case_ids": list(case_ids),
        }
        return self._request("POST", f"add_run/{project_id}", payload)

    def add_results_for_cases(self, run_id: int, results: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Bulk-add results; TestRail rejects the whole batch on any bad case."""
        data = self._request("POST", f"add_results_for_cases/{run_id}", {"results": list(results)})
        return data or []


def client_from_config(target: bool = False, config: Optional[Config] = None) -> TestRailClient:
    """Build the source (default) or target account client from configuration."""
    config = config or get_config()
    if target:
        url, username, token = config.target_credentials()
        env_prefix = "MIRANTIS_"
    else:
        url, username, token = config.source_credentials()
        env_prefix = ""
    if not username or not token:
        raise ConfigurationError(
            f"Need to set {env_prefix}TESTRAIL_USERNAME and {env_prefix}TESTRAIL_TOKEN"
        )
    return TestRailClient(url, username, token, timeout=config.testrail_timeout)

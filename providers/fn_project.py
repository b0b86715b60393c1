# ============================================================================
# FN PROJECT PROVIDER
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Fn Project REST client
# PURPOSE: App and function lifecycle against the Fn Project v2 API
# CREATED: 10 OCT 2026
# ============================================================================
"""
Fn Project Provider

Async httpx client for the Fn Project server API
(https://github.com/fnproject/fn/blob/master/docs/swagger_v2.yml):

    GET  /v2/apps?cursor=<c>   -> {"items": [...], "next_cursor": "..."}
    POST /v2/apps              {"name"}                  -> app
    POST /v2/fns               {"name", "app_id", "image"} -> fn
    PUT  /v2/fns/{fn_id}       {"image"}                 -> fn

Every call except the app listing treats a non-200 response as a soft
failure (logged, returns None). The listing retries a failing page up to
three times with a linearly growing delay and raises
ProviderUnavailableError once retries are exhausted.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from core.errors import ProviderUnavailableError
from providers.base import FaasProvider

logger = logging.getLogger(__name__)

DEFAULT_FN_PROJECT_URL = "http://127.0.0.1:8080"
INVOKE_ENDPOINT_ANNOTATION = "fnproject.io/fn/invokeEndpoint"

MAX_LIST_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 0.5

# Timeout: 10s connect, 60s read (function create pulls image metadata)
DEFAULT_TIMEOUT = httpx.Timeout(connect=10.0, read=60.0, write=30.0, pool=30.0)


def get_fn_project_url(env: Optional[Dict[str, str]] = None) -> str:
    """Provider base URL from the environment (defaults to a local Fn server)."""
    env = os.environ if env is None else env
    return env.get("BUILDER_PROVIDER_URL") or DEFAULT_FN_PROJECT_URL


class FnProjectProvider(FaasProvider):
    """Fn Project implementation of FaasProvider."""

    NAME = "fnProject"

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        max_list_retries: int = MAX_LIST_RETRIES,
    ):
        """
        Args:
            base_url: Fn server URL (defaults to BUILDER_PROVIDER_URL)
            client: Pre-built AsyncClient (tests pass one with a MockTransport)
            retry_delay_seconds: Base delay for listing retries
            max_list_retries: Retries per failing listing page
        """
        self._base_url = (base_url or get_fn_project_url()).rstrip("/")
        self._client = client
        self._owns_client = client is None
        self.retry_delay_seconds = retry_delay_seconds
        self.max_list_retries = max_list_retries

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=DEFAULT_TIMEOUT,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a request; any status code is returned to the caller."""
        return await self._get_client().request(method, path, json=json_body, params=params)

    @staticmethod
    def _body(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # ------------------------------------------------------------------
    # APPS
    # ------------------------------------------------------------------

    async def list_apps(self) -> List[Dict[str, Any]]:
        """
        Fetch every app, following next_cursor until the last page.

        Pages already fetched are kept while a failing page is retried.

        Raises:
            ProviderUnavailableError: After MAX_LIST_RETRIES failures on one page
        """
        apps: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        attempt = 0

        while True:
            params = {"cursor": cursor} if cursor else None
            resp = await self._request("GET", "/v2/apps", params=params)

            if resp.status_code == 200:
                data = resp.json()
                apps.extend(data.get("items") or [])
                cursor = data.get("next_cursor")
                attempt = 0
                if not cursor:
                    return apps
                continue

            logger.warning(
                f"Failed to get application list in fnProject: "
                f"status={resp.status_code} response={self._body(resp)}"
            )
            attempt += 1
            if attempt > self.max_list_retries:
                logger.error(
                    f"Failed to get application list in fnProject and retries exhausted: "
                    f"status={resp.status_code}"
                )
                raise ProviderUnavailableError()

            await asyncio.sleep(self.retry_delay_seconds * attempt)

    async def find_app_id_by_name(self, name: str) -> Optional[str]:
        # TODO: switch to a server-side name filter if the Fn API grows one;
        # this scans every app on the server.
        for app in await self.list_apps():
            if app.get("name") == name:
                return app.get("id")
        return None

    async def create_app(self, name: str) -> Optional[str]:
        resp = await self._request("POST", "/v2/apps", json_body={"name": name})
        if resp.status_code == 200:
            return resp.json().get("id")
        logger.warning(
            f"Failed to create application in fnProject: "
            f"status={resp.status_code} response={self._body(resp)}"
        )
        return None

    # ------------------------------------------------------------------
    # FUNCTIONS
    # ------------------------------------------------------------------

    async def create_function(
        self, name: str, app_id: str, image: str
    ) -> Optional[Dict[str, Any]]:
        body = {"name": name, "app_id": app_id, "image": image}
        resp = await self._request("POST", "/v2/fns", json_body=body)
        if resp.status_code == 200:
            return resp.json()
        logger.warning(
            f"Failed to create function in fnProject: "
            f"status={resp.status_code} response={self._body(resp)}"
        )
        return None

    async def update_function(
        self, function_id: str, app_id: Optional[str], image: str
    ) -> Optional[Dict[str, Any]]:
        # app_id is not part of the Fn update route; functions are global ids
        resp = await self._request("PUT", f"/v2/fns/{function_id}", json_body={"image": image})
        if resp.status_code == 200:
            return resp.json()
        logger.warning(
            f"Failed to update function in fnProject: "
            f"status={resp.status_code} response={self._body(resp)}"
        )
        return None

    def invoke_endpoint(self, function: Dict[str, Any]) -> Optional[str]:
        return (function.get("annotations") or {}).get(INVOKE_ENDPOINT_ANNOTATION)


__all__ = [
    "FnProjectProvider",
    "get_fn_project_url",
    "DEFAULT_FN_PROJECT_URL",
    "INVOKE_ENDPOINT_ANNOTATION",
    "MAX_LIST_RETRIES",
]

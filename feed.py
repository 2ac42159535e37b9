import logging
from typing import Any, Dict, List, Optional

import httpx

from config import Settings
from errors import FeedError
from helpers import is_valid_http_url

logger = logging.getLogger(__name__)


class FeedClient:
    """Pulls raw material rows from the SAP endpoint. Never writes anything."""

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def _request_options(self) -> Dict[str, Any]:
        s = self.settings
        headers: Dict[str, str] = {"Accept": "application/json"}
        options: Dict[str, Any] = {"headers": headers}
        if s.sap_auth_type == "basic":
            options["auth"] = httpx.BasicAuth(s.sap_basic_user, s.sap_basic_pass)
        elif s.sap_auth_type == "bearer":
            headers["Authorization"] = f"Bearer {s.sap_bearer_token}"
        return options

    def fetch(self) -> List[Dict[str, Any]]:
        url = self.settings.sap_api_url
        if not is_valid_http_url(url):
            raise FeedError("SAP_API_URL is missing or not a valid http/https URL")

        if not self.settings.sap_tls_verify:
            logger.warning("TLS verification disabled for SAP feed %s", url)

        try:
            with httpx.Client(verify=self.settings.sap_tls_verify, transport=self.transport) as client:
                response = client.get(url, **self._request_options())
        except httpx.HTTPError as exc:
            raise FeedError(f"SAP feed request failed: {exc}")

        if not response.is_success:
            raise FeedError(f"SAP feed responded with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            raise FeedError("SAP feed did not return JSON")

        # expected {"count": n, "items": [...]}, some services return the bare list
        items = data.get("items") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise FeedError("SAP feed response has no item list")

        logger.info("Fetched %d rows from SAP feed %s", len(items), url)
        return items

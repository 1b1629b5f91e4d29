# popcorn_dashboard/typeform.py

"""
Thin client for the Typeform Create and Responses APIs.
Only the calls we need: list a form's responses, read a form, and patch
the form's logic jumps when a customer code is added.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class TypeformError(Exception):
    """Typeform answered with an error, or didn't answer at all."""


class TypeformClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.typeform.com",
        page_size: int = 1000,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.page_size = page_size
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )

    def __enter__(self) -> "TypeformClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TypeformError(
                f"Typeform API error: {e.response.status_code} - {e.response.reason_phrase}"
            ) from e
        except httpx.RequestError as e:
            raise TypeformError(f"No response from Typeform API: {e}") from e
        return response

    def fetch_responses(self, form_id: str) -> List[Dict[str, Any]]:
        """
        Return the raw response items of a form, in Typeform's order.
        Only the first page is read; page_size is set high enough that one
        page covers the form.
        """
        response = self._request("GET", f"/forms/{form_id}/responses", params={"page_size": self.page_size})

        data = response.json()
        items = data.get("items") or []
        total = data.get("total_items", len(items))
        if total > len(items):
            logger.warning(
                "Form %s has %s responses but only %s were returned in one page",
                form_id, total, len(items),
            )
        return items

    def fetch_form(self, form_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/forms/{form_id}").json()

    def update_form_logic(self, form_id: str, jumps: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Replace the form's logic jumps. Typeform may answer 204 with no body."""
        response = self._request("PATCH", f"/forms/{form_id}", json={"logic": {"jumps": jumps}})
        return response.json() if response.content else {}

import logging
from typing import Any, Dict

import httpx

from app.core.config import settings
from app.core.errors import ConnectivityError
from app.schemas.dashboard import DateRange
from app.services.date_ranges import to_iso

logger = logging.getLogger(__name__)


class AnalyticsClient:
    """Client for the remote analytics API"""

    def __init__(self, base_url: str = None, timeout: float = None):
        self.base_url = (base_url or settings.ANALYTICS_API_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.headers = {"Accept": "application/json"}

    async def get_stats(self, client_id: str, date_range: DateRange) -> Dict[str, Any]:
        """Fetch aggregated stats for one tenant and date window (raw JSON)."""
        params = {
            "client_id": client_id,
            "start_date": to_iso(date_range.start),
            "end_date": to_iso(date_range.end),
        }
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    f"{self.base_url}/stats",
                    headers=self.headers,
                    params=params,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Analytics API returned {e.response.status_code} for client {client_id}")
            raise ConnectivityError("Failed to fetch data") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Analytics API request failed for client {client_id}: {str(e)}")
            raise ConnectivityError("Failed to fetch data") from e

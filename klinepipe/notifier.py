"""Event notification to an observability webhook."""
import logging
from typing import Any, Dict
from datetime import datetime, timezone
import requests

from klinepipe.orchestrator.schemas import RunResult

logger = logging.getLogger(__name__)


class Notifier:
    """Send run events to a webhook. Never raises exceptions into the pipeline."""

    def __init__(self, webhook_url: str, app_name: str = "klinepipe", timeout: float = 5.0) -> None:
        self.webhook_url = webhook_url
        self.app_name = app_name
        self.timeout = timeout
        self.session = requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send_event(self, event_type: str, data: Dict[str, Any]) -> bool:
        """
        Send event to the webhook.

        Args:
            event_type: Type of event (e.g., 'run_completed', 'run_aborted')
            data: Event payload

        Returns:
            True if sent successfully, False otherwise (including when disabled)
        """
        if not self.enabled:
            logger.debug(f"Webhook disabled, dropping {event_type} event")
            return False

        try:
            payload = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "event_type": event_type,
                "app_name": self.app_name,
                "data": data,
            }

            response = self.session.post(
                self.webhook_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )

            if response.status_code >= 400:
                logger.warning(
                    f"Webhook returned {response.status_code}: {response.text[:200]}"
                )
                return False

            logger.debug(f"Event sent: {event_type}")
            return True

        except requests.exceptions.Timeout:
            logger.warning(f"Webhook timeout sending {event_type}")
            return False
        except requests.exceptions.ConnectionError:
            logger.warning(f"Webhook connection error sending {event_type}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error sending webhook event: {e}", exc_info=True)
            return False

    def send_run_completed(self, result: RunResult) -> bool:
        return self.send_event("run_completed", result.model_dump(mode="json"))

    def send_run_aborted(self, timeframe: str, error: Exception) -> bool:
        return self.send_event("run_aborted", {"timeframe": timeframe, "error": str(error)})

    def send_scheduler_started(self, timeframe: str, interval_seconds: int) -> bool:
        return self.send_event("scheduler_started", {"timeframe": timeframe, "interval_seconds": interval_seconds})

    def send_scheduler_stopped(self) -> bool:
        return self.send_event("scheduler_stopped", {"message": "Scheduler stopped"})

"""
Grafana OTLP Metrics Exporter
==============================

Pushes usage metrics to Grafana Cloud via OTLP.

Metrics exported:
- llm_tokens_total / llm_prompt_tokens / llm_completion_tokens
- llm_latency_ms: provider request latency in milliseconds
- assignments_total: ticket auto-assignments, tagged by method
"""

import base64
import time
from typing import Dict, List, Optional

import httpx

from supportdesk.config import settings
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class GrafanaOTLPExporter:
    """
    Export metrics to Grafana Cloud via OTLP HTTP endpoint.

    Every metric is sent as a gauge data point; failures are logged and
    reported as False, never raised.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        api_key: Optional[str] = None,
        instance_id: Optional[str] = None
    ):
        self._host = host or settings.grafana_host
        self._api_key = api_key or settings.grafana_api_key
        self._instance_id = instance_id or settings.grafana_instance_id
        self._enabled = bool(self._host and self._api_key and self._instance_id)

        if self._enabled:
            auth_pair = f"{self._instance_id}:{self._api_key}"
            self._auth_encoded = base64.b64encode(auth_pair.encode()).decode()
            if "/otlp/v1/metrics" not in self._host:
                self._url = f"{self._host}/otlp/v1/metrics"
            else:
                self._url = self._host
            logger.info(
                "Grafana OTLP exporter initialized",
                extra={"host": self._host, "instance_id": self._instance_id}
            )
        else:
            logger.info("Grafana OTLP exporter not configured - metrics will not be exported")

    def is_enabled(self) -> bool:
        """Check if exporter is properly configured."""
        return self._enabled

    async def export_llm_metrics(
        self,
        model: str,
        prompt_tokens: int,
        completion_tokens: int,
        latency_ms: int,
        operation: str = "chat_completion",
        attributes: Optional[Dict[str, str]] = None
    ) -> bool:
        """
        Export LLM usage metrics to Grafana.

        Args:
            model: LLM model name
            prompt_tokens: Number of prompt tokens used
            completion_tokens: Number of completion tokens generated
            latency_ms: Request latency in milliseconds
            operation: Operation type (embedding, rag_answer, ...)
            attributes: Additional attributes to attach to metrics

        Returns:
            True if export succeeded, False otherwise
        """
        gauges = {
            "llm_tokens_total": (prompt_tokens + completion_tokens, "1"),
            "llm_prompt_tokens": (prompt_tokens, "1"),
            "llm_completion_tokens": (completion_tokens, "1"),
            "llm_latency_ms": (latency_ms, "ms"),
        }
        tags = {"model": model, "operation": operation, **(attributes or {})}
        return await self._push(gauges, tags)

    async def export_assignment_metrics(
        self,
        organization_id: str,
        method: str,
        open_tickets_count: int
    ) -> bool:
        """Export one auto-assignment decision."""
        gauges = {
            "assignments_total": (1, "1"),
            "assignee_open_tickets": (open_tickets_count, "1"),
        }
        tags = {"organization_id": organization_id, "method": method}
        return await self._push(gauges, tags)

    async def _push(self, gauges: Dict[str, tuple], tags: Dict[str, str]) -> bool:
        if not self._enabled:
            logger.debug("Grafana exporter not enabled - skipping metrics export")
            return False

        timestamp_ns = int(time.time() * 1_000_000_000)
        metric_attributes = self._attributes({"service": settings.app_name, **tags})

        metrics: List[dict] = []
        for name, (value, unit) in gauges.items():
            metrics.append({
                "name": name,
                "unit": unit,
                "gauge": {
                    "dataPoints": [
                        {
                            "asInt": int(value),
                            "timeUnixNano": timestamp_ns,
                            "attributes": metric_attributes
                        }
                    ]
                }
            })

        payload = {
            "resourceMetrics": [
                {
                    "resource": {
                        "attributes": self._attributes({
                            "service.name": settings.app_name,
                            "service.version": settings.app_version,
                            "deployment.environment": settings.environment,
                        })
                    },
                    "scopeMetrics": [{"metrics": metrics}]
                }
            ]
        }

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self._auth_encoded}",
            "X-Grafana-Org-Id": str(self._instance_id)
        }

        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.post(self._url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error("Error exporting metrics to Grafana", extra={"error": str(e)})
            return False

        if response.status_code in (200, 202):
            logger.debug(
                "Metrics exported to Grafana",
                extra={"metrics": list(gauges), "status_code": response.status_code}
            )
            return True

        logger.warning(
            "Failed to export metrics to Grafana",
            extra={
                "status_code": response.status_code,
                "response": response.text[:500],
                "url": self._url
            }
        )
        return False

    @staticmethod
    def _attributes(values: Dict[str, str]) -> List[dict]:
        return [
            {"key": key, "value": {"stringValue": str(value)}}
            for key, value in values.items()
        ]


# Global exporter instance
_grafana_exporter: Optional[GrafanaOTLPExporter] = None


def get_grafana_exporter() -> Optional[GrafanaOTLPExporter]:
    """Get or create global Grafana exporter instance."""
    global _grafana_exporter
    if _grafana_exporter is None:
        _grafana_exporter = GrafanaOTLPExporter()
    return _grafana_exporter


def init_grafana_exporter(
    host: str,
    api_key: str,
    instance_id: str
) -> GrafanaOTLPExporter:
    """Initialize Grafana exporter with credentials."""
    global _grafana_exporter
    _grafana_exporter = GrafanaOTLPExporter(
        host=host,
        api_key=api_key,
        instance_id=instance_id
    )
    return _grafana_exporter

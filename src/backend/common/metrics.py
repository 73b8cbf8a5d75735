# SPDX-FileCopyrightText: 2025 robot-visual-perception
#
# SPDX-License-Identifier: MIT
import logging
import os
from typing import Optional

from opentelemetry import metrics
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource
from opentelemetry.semconv.resource import ResourceAttributes


_configured = False
_meter: Optional[metrics.Meter] = None
_METER_NAME = "signaling"


def configure_metrics(
    service_name: str,
    service_version: str,
    environment: str | None = None,
) -> metrics.Meter:
    """
    Configure OpenTelemetry metrics and return a Meter instance.

    This sets up:
      - MeterProvider with OTLP HTTP exporter (if an endpoint is configured)
      - Respect for ENVIRONMENT / OTEL_EXPORTER_OTLP* env vars
      - Returns a Meter for creating metrics

    Args:
        service_name: Name of the service (e.g., "signaling")
        service_version: Version of the service
        environment: Deployment environment (e.g., "development", "production")

    Returns:
        Meter instance for creating metrics
    """
    global _configured, _meter
    if _configured and _meter is not None:
        return _meter

    env = (
        os.getenv("ENVIRONMENT", "development") if environment is None else environment
    )

    resource = Resource.create(
        {
            ResourceAttributes.SERVICE_NAME: service_name,
            ResourceAttributes.SERVICE_VERSION: service_version,
            ResourceAttributes.DEPLOYMENT_ENVIRONMENT: env,
        }
    )

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT") or os.getenv(
        "OTEL_EXPORTER_OTLP_ENDPOINT"
    )

    if otlp_endpoint:
        try:
            otlp_exporter = OTLPMetricExporter(endpoint=otlp_endpoint)
            reader = PeriodicExportingMetricReader(
                otlp_exporter, export_interval_millis=5000
            )
            meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
        except Exception as err:  # pragma: no cover
            logging.getLogger(__name__).warning(
                "OTLP metrics exporter setup failed; metrics disabled",
                extra={"error": str(err)},
            )
            meter_provider = MeterProvider(resource=resource)
    else:
        meter_provider = MeterProvider(resource=resource)

    metrics.set_meter_provider(meter_provider)
    _meter = metrics.get_meter(_METER_NAME, service_version)
    _configured = True

    return _meter


def get_meter() -> metrics.Meter:
    """Get the configured Meter instance.

    Falls back to the global (proxy) meter when ``configure_metrics`` has not
    run yet, e.g. in tests, so instruments can always be created.
    """
    if _meter is None:
        return metrics.get_meter(_METER_NAME)
    return _meter


class SignalingMetrics:
    """Instruments recorded by the signaling relay."""

    def __init__(self, meter: metrics.Meter | None = None) -> None:
        meter = meter or get_meter()
        self.sessions_created = meter.create_counter(
            "signaling.sessions.created",
            description="Sessions opened by a broadcaster",
        )
        self.sessions_closed = meter.create_counter(
            "signaling.sessions.closed",
            description="Sessions destroyed, labelled by reason",
        )
        self.active_sessions = meter.create_up_down_counter(
            "signaling.sessions.active",
            description="Sessions currently registered",
        )
        self.viewers_joined = meter.create_counter(
            "signaling.viewers.joined",
            description="Successful join-session requests",
        )
        self.viewers_left = meter.create_counter(
            "signaling.viewers.left",
            description="Viewer transports closed while their session was live",
        )
        self.messages_routed = meter.create_counter(
            "signaling.messages.routed",
            description="Inbound envelopes accepted by the router, by type",
        )
        self.messages_dropped = meter.create_counter(
            "signaling.messages.dropped",
            description="Malformed envelopes dropped at ingress",
        )
        self.messages_rejected = meter.create_counter(
            "signaling.messages.rejected",
            description="Envelopes answered with an error, by reason",
        )
        self.send_failures = meter.create_counter(
            "signaling.sends.failed",
            description="Outbound sends that failed or timed out",
        )

"""GCP monitoring helpers for Cloud Logging and Error Reporting."""

from dataclasses import dataclass
import logging
import os
import random
from typing import Any

from erasure.core.config import settings


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MonitoringClients:
    """Holds optional GCP monitoring clients."""

    error_reporter: Any | None
    logging_enabled: bool


def _monitoring_enabled() -> bool:
    if settings.ENV == "dev":
        return False
    if os.getenv("TESTING", "").lower() in ("1", "true", "yes"):
        return False
    return settings.GCP_MONITORING_ENABLED


def _should_sample() -> bool:
    rate = settings.GCP_ERROR_REPORTING_SAMPLE_RATE
    if rate >= 1:
        return True
    if rate <= 0:
        return False
    return random.random() < rate


def setup_gcp_monitoring(service_name: str) -> MonitoringClients:
    """
    Initialize GCP Cloud Logging and Error Reporting.

    Returns MonitoringClients with logging_enabled and an optional error_reporter.
    The google-cloud clients are only needed when monitoring is enabled
    (install the ``gcp`` extra).
    """
    if not _monitoring_enabled():
        return MonitoringClients(error_reporter=None, logging_enabled=False)

    project_id = settings.gcp_project_id
    logging_enabled = False
    error_reporter = None

    try:
        from google.cloud import logging as cloud_logging
        from google.cloud import error_reporting
    except Exception as exc:
        logger.warning("GCP monitoring dependencies unavailable: %s", exc)
        return MonitoringClients(error_reporter=None, logging_enabled=False)

    try:
        cloud_client = cloud_logging.Client(project=project_id or None)
        cloud_client.setup_logging()
        logging_enabled = True
    except Exception as exc:
        logger.warning("GCP logging setup failed: %s", exc)

    try:
        error_reporter = error_reporting.Client(
            project=project_id or None,
            service=service_name,
            version=settings.VERSION,
        )
    except Exception as exc:
        logger.warning("GCP error reporting setup failed: %s", exc)

    return MonitoringClients(
        error_reporter=error_reporter,
        logging_enabled=logging_enabled,
    )


def configure_logging(monitoring: MonitoringClients) -> None:
    """Fallback console logging when Cloud Logging isn't enabled."""
    if monitoring.logging_enabled:
        return
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def report_exception(error_reporter: Any | None, job_id: str | None = None) -> None:
    """Report the current exception to GCP Error Reporting."""
    if not error_reporter or not _should_sample():
        return

    try:
        if job_id:
            try:
                error_reporter.report_exception(user=f"delete_job={job_id}")
                return
            except TypeError:
                pass
        error_reporter.report_exception()
    except Exception as exc:
        logger.warning("Failed to report exception: %s", exc)

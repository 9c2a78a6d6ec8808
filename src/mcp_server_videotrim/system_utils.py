import logging
import os

import psutil

from .slack_utils import send_slack_alert_if_needed

logger = logging.getLogger(__name__)


def log_system_status(
    component_name: str,
    path: str | os.PathLike[str] = "/",
    include_process_rss: bool = True,
) -> None:
    """Log disk and process resource stats, and send Slack alert if configured."""
    try:
        du = psutil.disk_usage(str(path))
        process_rss_mb: int | None = None
        if include_process_rss:
            try:
                current_process = psutil.Process()
                process_rss_mb = current_process.memory_info().rss // (1024**2)
            except Exception:
                process_rss_mb = None

        msg = (
            f"Component={component_name} | "
            f"Disk used={du.percent:.1f}% "
            f"({du.used // (1024**3)}GB/{du.total // (1024**3)}GB)"
            + (
                f" | Process RSS={process_rss_mb}MB"
                if process_rss_mb is not None
                else ""
            )
        )
        logger.info(msg)

        send_slack_alert_if_needed(du.percent, component_name, process_rss_mb)
    except Exception as exc:  # pragma: no cover
        logger.debug(f"Failed to log system status: {exc}")

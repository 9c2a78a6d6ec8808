import json
import logging
import os
import ssl
import urllib.request

import certifi

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


def _threshold_from_env() -> float:
    try:
        return float(os.environ.get("MCP_SLACK_DISK_THRESHOLD", "90"))
    except ValueError:
        return 90.0


def _ssl_context() -> ssl.SSLContext:
    if os.environ.get("MCP_SLACK_VERIFY_SSL", "true").lower() == "true":
        return ssl.create_default_context(cafile=certifi.where())
    logger.warning("Slack webhook SSL verification is disabled")
    return ssl._create_unverified_context()


def build_disk_alert_payload(
    disk_percent: float, component_name: str, process_rss_mb: int | None
) -> dict:
    return {
        "text": f"🚨 Video trim server disk usage high ({disk_percent:.1f}%)",
        "attachments": [
            {
                "color": "danger",
                "fields": [
                    {"title": "Server", "value": "Video Trim", "short": True},
                    {"title": "Component", "value": component_name, "short": True},
                    {
                        "title": "Disk Used",
                        "value": f"{disk_percent:.1f}%",
                        "short": True,
                    },
                    {
                        "title": "Process RSS",
                        "value": f"{process_rss_mb}MB"
                        if process_rss_mb is not None
                        else "n/a",
                        "short": True,
                    },
                ],
            }
        ],
    }


def send_slack_alert_if_needed(
    disk_percent: float,
    component_name: str,
    process_rss_mb: int | None = None,
) -> tuple[bool, int | None]:
    """Send a Slack alert via webhook if configured and the disk threshold is exceeded.

    Uploads, intermediates and results all live on local disk, so disk usage
    is the resource worth paging on.

    Returns a tuple: (attempted, status_code). If not attempted, status_code is None.
    """
    alerts_enabled = (
        os.environ.get("MCP_SLACK_ALERTS_ENABLED", "false").lower() in _TRUTHY
    )
    webhook_url = os.environ.get("MCP_SLACK_WEBHOOK_URL")
    threshold_pct = _threshold_from_env()

    should_alert = alerts_enabled and bool(webhook_url) and disk_percent >= threshold_pct
    logger.debug(
        f"Slack alert check: enabled={alerts_enabled} disk={disk_percent:.1f}% "
        f"threshold={threshold_pct:.1f}% has_webhook={'yes' if webhook_url else 'no'}"
    )
    if not should_alert:
        return False, None

    payload = build_disk_alert_payload(disk_percent, component_name, process_rss_mb)
    try:
        req = urllib.request.Request(
            webhook_url or "",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=5, context=_ssl_context()) as resp:
            code = getattr(resp, "status", None) or getattr(resp, "code", None)
            logger.info(f"Slack alert sent, status={code}")
            return True, int(code) if code is not None else None
    except Exception as slack_err:  # pragma: no cover
        logger.warning(f"Slack alert send failed: {slack_err}")
        return True, None

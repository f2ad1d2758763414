"""
Lambda worker that builds a dealer report from an SQS message (or a direct
invocation), uploads it to S3 and notifies the caller.

Each report can be deployed as its own function (`recall_bdc_handler`,
`recall_roi_handler`, `video_handler`, `video_ro_handler`), taking the job
payload the report producers already send. `lambda_handler` serves any report,
picked by the payload's `report` field or the REPORT_TYPE environment variable.
"""

import logging
import os
from typing import Optional

from shared.config import load_settings
from shared.errors import ConfigurationError
from shared.jobs import job_payload, parse_job
from shared.reports import get_report
from shared.runner import deliver, required_env, run_report

logger = logging.getLogger()


def run_job(event, default_report: Optional[str] = None) -> dict:
    """
    Parse, run and deliver one report job.
    Args:
        event (dict): SQS event whose first record body is the job JSON, or the job itself.
        default_report (str): Report to run when the payload doesn't name one.
    Returns:
        dict: {"statusCode": 201, "body": <s3 key>}
    Raises:
        ReportError: Any failure is raised so Lambda marks the invocation failed.
    """
    payload = job_payload(event)
    job = parse_job(payload)
    name = job.report or default_report
    if not name:
        raise ConfigurationError("Please provide a report field or set REPORT_TYPE")
    try:
        report = get_report(name)
    except KeyError:
        raise ConfigurationError(f"Unknown report: {name}") from None

    settings = load_settings(required_env(report, job))
    logger.setLevel(settings.log_level)
    logger.info("Starting %s for %s to %s", report.name, job.start_date, job.end_date)

    result = run_report(report, job, settings)
    delivery = deliver(report, job, result, settings)
    logger.info("Finished %s: %d row(s) at s3://%s/%s", report.name, delivery.row_count, delivery.bucket, delivery.key)

    return {"statusCode": 201, "body": delivery.key}


def lambda_handler(event, context):
    """Run the report named in the payload, falling back to REPORT_TYPE."""
    return run_job(event, os.environ.get("REPORT_TYPE"))


def make_handler(report_name: str):
    """Build a Lambda handler bound to one report; a payload `report` field still wins."""
    get_report(report_name)

    def handler(event, context):
        return run_job(event, report_name)

    handler.__name__ = f"{report_name}_handler"
    return handler


recall_bdc_handler = make_handler("recall_bdc")
recall_roi_handler = make_handler("recall_roi")
video_handler = make_handler("video")
video_ro_handler = make_handler("video_ro")

"""
Run a report across dealers and deliver the result.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, NamedTuple, Optional

import pymysql

from shared import db, notify, storage
from shared.config import DEALER_API_ENV, EMAIL_ENV, INDEX_DB_ENV, STORAGE_ENV, Settings
from shared.dealers import DealerConnectionInfo, UnotifiApiClient, lookup_dealers
from shared.errors import ConfigurationError, CredentialLookupError, DealerQueryError
from shared.formatting import format_rows, render
from shared.jobs import ReportJob
from shared.reports import API, INDEX_DB, ReportDefinition
from shared.security import validate_identifiers

logger = logging.getLogger(__name__)


class ReportResult(NamedTuple):
    rows: List[Dict[str, Any]]
    body: bytes
    content_type: str
    extension: str


class Delivery(NamedTuple):
    bucket: str
    key: str
    row_count: int
    link: Optional[str] = None


def required_env(report: ReportDefinition, job: ReportJob) -> List[str]:
    """Environment variables this job needs before any I/O happens."""
    names = list(INDEX_DB_ENV if report.credential_source == INDEX_DB else DEALER_API_ENV)
    names += STORAGE_ENV
    if job.email_recipients:
        names += EMAIL_ENV
    return names


def validate_job(report: ReportDefinition, job: ReportJob) -> None:
    """
    Raises:
        ConfigurationError: Naming the first payload field the report is missing
            or holding a malformed identifier.
    """
    if report.credential_source == INDEX_DB and not job.dealer_ids:
        raise ConfigurationError("Please provide at least one dealerID")
    if report.credential_source == API and not job.integralink_codes:
        raise ConfigurationError("Please provide at least one dealershipIntegralinkCode")
    if report.requires_recipients and not job.email_recipients:
        raise ConfigurationError("Please provide at least one emailRecipient")
    if report.requires_reply_to and not job.reply_to:
        raise ConfigurationError("Please provide a replyTo field")
    validate_identifiers(job.dealer_ids, "dealerIDs")
    validate_identifiers(job.integralink_codes, "dealershipIntegralinkCodes")


def resolve_dealers(report: ReportDefinition, job: ReportJob, settings: Settings) -> List[DealerConnectionInfo]:
    """
    Look up connection info for every dealer in the job.
    Raises:
        CredentialLookupError: If the lookup fails; the report can't run without it.
    """
    if report.credential_source == API:
        client = UnotifiApiClient(settings.api_base_url, settings.api_token)
        return client.get_dealer_connections(job.integralink_codes)

    try:
        with db.connection(settings.index_db_info(), settings.db_connect_timeout) as conn:
            return lookup_dealers(conn, job.dealer_ids)
    except pymysql.MySQLError as e:
        raise CredentialLookupError(f"Could not reach the index database: {e}") from e


def collect_dealer_rows(
    report: ReportDefinition, dealer: DealerConnectionInfo, job: ReportJob, settings: Settings
) -> List[Dict[str, Any]]:
    """
    Run one dealer's queries on its own connection.
    When the dealer's database fails, the "isolate" policy logs it and returns the
    dealer's zeroed fallback row; "abort" raises DealerQueryError.
    """
    try:
        with db.connection(dealer.conn_info(), settings.db_connect_timeout) as conn:
            return report.collect(conn, dealer, job)
    except pymysql.MySQLError as e:
        if settings.dealer_failure_policy == "abort":
            raise DealerQueryError(dealer.dealer_name, str(e)) from e
        logger.exception("Queries failed for %s, reporting zeroed row", dealer.dealer_name)
        return report.fallback_rows(dealer)


def run_report(report: ReportDefinition, job: ReportJob, settings: Settings) -> ReportResult:
    """
    Build a report: resolve dealers, fan out one worker per dealer, format and render.
    Rows keep dealer order, then the consolidated order within each dealer.
    """
    validate_job(report, job)
    dealers = resolve_dealers(report, job, settings)
    logger.info("Running %s for %d dealer(s)", report.name, len(dealers))

    rows: List[Dict[str, Any]] = []
    if dealers:
        workers = max(1, min(len(dealers), settings.max_dealer_workers))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = pool.map(lambda d: collect_dealer_rows(report, d, job, settings), dealers)
            for dealer_rows in results:
                rows.extend(dealer_rows)

    formatted = format_rows(rows, report.schema)
    body, content_type, extension = render(formatted, report.schema, job.output_format)
    return ReportResult(formatted, body, content_type, extension)


def deliver(report: ReportDefinition, job: ReportJob, result: ReportResult, settings: Settings, s3=None) -> Delivery:
    """
    Upload the rendered report, then email the link and/or reply to the caller's webhook.
    Raises:
        UploadError: If S3 rejects the upload.
        NotifyError: If the email or webhook call fails.
    """
    s3 = s3 or storage.get_s3(settings.aws_region)
    bucket = settings.reports_bucket
    key = storage.generate_s3_key(report.filename, result.extension, prepend_to_path=report.s3_prefix)
    storage.upload_report(s3, bucket, key, result.body, result.content_type)

    link = None
    if job.email_recipients:
        link = storage.presigned_url(s3, bucket, key)
        notify.send_report_email(
            settings.sendgrid_api_key,
            settings.sendgrid_from_email,
            job.email_recipients,
            report.title,
            link,
            job.start_date,
            job.end_date,
            job.group_name,
        )
    if job.reply_to:
        notify.reply_to(job.reply_to, bucket, key)
    return Delivery(bucket, key, len(result.rows), link)

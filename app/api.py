"""
API module for the dealer reports.
This FastAPI app lists the available reports and runs a report synchronously,
returning the S3 location of the rendered file.
"""

import logging

from fastapi import FastAPI, HTTPException
from mangum import Mangum

from shared.config import load_settings
from shared.errors import ConfigurationError, ReportError
from shared.jobs import ReportJob, parse_job
from shared.reports import REPORTS
from shared.runner import deliver, required_env, run_report

logger = logging.getLogger(__name__)

app = FastAPI(title="Dealer Reports API (Serverless)")


@app.get("/health")
def health():
    """
    Health check endpoint.
    Returns:
        dict: Always {"ok": True}
    """
    return {"ok": True}


@app.get("/reports")
def list_reports():
    """
    Returns:
        dict: Report names with their titles and output columns.
    """
    return {
        "reports": [
            {"name": r.name, "title": r.title, "columns": r.schema.titles}
            for r in REPORTS.values()
        ]
    }


@app.post("/reports/{report_type}", status_code=201)
def create_report(report_type: str, body: dict):
    """
    Endpoint to build a report and store it in S3.
    Args:
        report_type (str): One of the names listed by /reports.
        body (dict): Job payload (dealerIDs or dealershipIntegralinkCodes, startDate, endDate, ...).
    Returns:
        dict: Bucket, key and row count of the uploaded report.
    Raises:
        HTTPException: 404 for an unknown report, 400 for a bad job or missing
            configuration, 502 when a database, S3 or notification call fails.
    """
    report = REPORTS.get(report_type)
    if report is None:
        raise HTTPException(status_code=404, detail="report not found")

    try:
        job: ReportJob = parse_job({**body, "report": report_type})
        settings = load_settings(required_env(report, job))
        result = run_report(report, job, settings)
        delivery = deliver(report, job, result, settings)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReportError as e:
        logger.exception("Report %s failed", report_type)
        raise HTTPException(status_code=502, detail=str(e))

    return {
        "report": report.name,
        "bucket": delivery.bucket,
        "key": delivery.key,
        "row_count": delivery.row_count,
        "download_url": delivery.link,
    }


handler = Mangum(app)
"""
AWS Lambda handler for the FastAPI app using Mangum adapter.
"""

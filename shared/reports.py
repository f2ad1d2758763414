"""
Report definitions: which queries run per dealer, how their rows merge, and the output columns.
"""

from typing import Any, Callable, Dict, List, Optional

from shared import queries
from shared.consolidate import Consolidator, consolidate
from shared.db import run_queries, run_query
from shared.dealers import DealerConnectionInfo
from shared.formatting import TEXT, UNAVAILABLE, Column, ReportSchema
from shared.jobs import ReportJob
from shared.response_time import average_response_times, events_from_rows

API = "api"
INDEX_DB = "index_db"

Collector = Callable[[Any, DealerConnectionInfo, ReportJob], List[Dict[str, Any]]]


class ReportDefinition:
    """
    One report type.
    Args:
        name (str): Identifier used in job payloads and API paths.
        title (str): Human-readable name, used in emails.
        s3_prefix (str): Leading S3 directory for uploads.
        schema (ReportSchema): Output columns.
        credential_source (str): API (integralink codes) or INDEX_DB (dealer ids).
        collect: Runs the dealer's queries and returns consolidated rows.
        requires_reply_to (bool): The job must carry a replyTo webhook.
        requires_recipients (bool): The job must carry emailRecipients.
    """

    def __init__(
        self,
        name: str,
        title: str,
        s3_prefix: str,
        schema: ReportSchema,
        credential_source: str,
        collect: Collector,
        requires_reply_to: bool = False,
        requires_recipients: bool = False,
    ):
        self.name = name
        self.title = title
        self.s3_prefix = s3_prefix
        self.schema = schema
        self.credential_source = credential_source
        self.collect = collect
        self.requires_reply_to = requires_reply_to
        self.requires_recipients = requires_recipients

    @property
    def filename(self) -> str:
        return self.name.replace("_", "-") + "-report"

    def fallback_rows(self, dealer: DealerConnectionInfo) -> List[Dict[str, Any]]:
        """Row contributed by a dealer whose queries failed; the formatter zeroes the rest."""
        return [dealer.constants()]


def _params(dealer: DealerConnectionInfo, job: ReportJob) -> Dict[str, Any]:
    return {"dealer_code": dealer.dealer_code, "start": job.start_date, "end": job.end_date}


def collect_recall_bdc(conn, dealer: DealerConnectionInfo, job: ReportJob) -> List[Dict[str, Any]]:
    params = _params(dealer, job)
    row_sets = run_queries(
        conn,
        [
            (queries.BDC_OPPORTUNITIES_CONTACTED, params),
            (queries.BDC_OPPORTUNITIES_TEXTED_CALLED, params),
            (queries.BDC_APPOINTMENTS, params),
            (queries.BDC_REPAIR_ORDER_REVENUE, params),
        ],
    )
    return consolidate(row_sets, "autoCampaignName", dealer.constants())


def collect_recall_roi(conn, dealer: DealerConnectionInfo, job: ReportJob) -> List[Dict[str, Any]]:
    params = _params(dealer, job)
    campaigns = Consolidator("campaignId")
    campaigns.add(run_query(conn, queries.ROI_CAMPAIGNS, params), dealer.constants())

    campaign_ids = campaigns.keys()
    if campaign_ids:
        appointments = run_query(
            conn, queries.ROI_APPOINTMENTS, {**params, "campaign_ids": tuple(campaign_ids)}
        )
        campaigns.add(appointments, dealer.constants(), overwrite_constants=False)
    return campaigns.rows()


def collect_video(conn, dealer: DealerConnectionInfo, job: ReportJob) -> List[Dict[str, Any]]:
    params = _params(dealer, job)
    ro_count, appt_count, videos, events = run_queries(
        conn,
        [
            (queries.VIDEO_REPAIR_ORDER_COUNT, params),
            (queries.VIDEO_APPOINTMENT_COUNT, params),
            (queries.VIDEO_SENT_COUNT, params),
            (queries.MESSAGE_EVENTS["recipient"], params),
        ],
    )
    response_time = average_response_times(events_from_rows(events, "recipient"), per_group=False)

    row = dict(dealer.constants())
    for rows in (ro_count, appt_count, videos):
        if rows:
            row.update(rows[0])
    row["averageResponseTime"] = _seconds(response_time)
    return [row]


def collect_video_ro(conn, dealer: DealerConnectionInfo, job: ReportJob) -> List[Dict[str, Any]]:
    params = _params(dealer, job)
    messages, replies, events = run_queries(
        conn,
        [
            (queries.VIDEO_RO_MESSAGES, params),
            (queries.VIDEO_RO_REPLIES, params),
            (queries.MESSAGE_EVENTS["repair_order"], params),
        ],
    )
    averages = average_response_times(events_from_rows(events, "repair_order"), per_group=True)
    response_rows = [
        {"roId": ro_id, "averageResponseTime": _seconds(seconds)}
        for ro_id, seconds in averages.items()
    ]
    return consolidate([messages, replies, response_rows], "roId", dealer.constants())


def _seconds(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


RECALL_BDC = ReportDefinition(
    name="recall_bdc",
    title="Recall BDC Report",
    s3_prefix="recall_bdc_reports",
    schema=ReportSchema([
        Column("dealerName", "Dealership Name", TEXT),
        Column("autoCampaignName", "Campaign Name", TEXT),
        Column("totalOpportunities", "Total Opportunities"),
        Column("totalOpportunitiesContacted", "Total Opportunities Contacted"),
        Column("totalOpportunitiesTexted", "Total Opportunities Texted"),
        Column("totalOpportunitiesCalled", "Total Opportunities Called"),
        Column("totalAppointments", "Total Appointments"),
        Column("totalAppointmentsArrived", "Total Appointments Arrived"),
        Column("totalRepairOrders", "Total Repair Orders"),
        Column("revenue", "Revenue"),
        Column("soldVehicles", "Sold Vehicles"),
    ]),
    credential_source=API,
    collect=collect_recall_bdc,
    requires_reply_to=True,
)

RECALL_ROI = ReportDefinition(
    name="recall_roi",
    title="Recall ROI Report",
    s3_prefix="Recall_ROI_Reports",
    schema=ReportSchema([
        Column("dealerName", "Dealership Name", TEXT),
        Column("campaignName", "Campaign Name", TEXT),
        Column("campaignType", "Campaign Type", TEXT),
        Column("textMessageNo", "No. of Texts"),
        Column("emailNo", "No. of Emails"),
        Column("appointmentNo", "No. of Appointments"),
        Column("arrivedAppointmentNo", "No. of Arrived Appointments"),
        Column("roNo", "No. of ROs"),
        Column("roTotal", "Amount"),
    ]),
    credential_source=API,
    collect=collect_recall_roi,
    requires_reply_to=True,
)

VIDEO = ReportDefinition(
    name="video",
    title="Video Report",
    s3_prefix="video_reports",
    schema=ReportSchema([
        Column("dealerId", "Dealer ID", TEXT),
        Column("dealerName", "Dealer Name", TEXT),
        Column("repairOrderCount", "Repair Order Count"),
        Column("appointmentCount", "Appointment Count"),
        Column("videosSent", "Videos Sent"),
        Column("averageResponseTime", "Average Response Time (seconds)"),
    ]),
    credential_source=INDEX_DB,
    collect=collect_video,
    requires_recipients=True,
)

VIDEO_RO = ReportDefinition(
    name="video_ro",
    title="Video Repair Order Report",
    s3_prefix="video_reports",
    schema=ReportSchema([
        Column("dealerName", "Dealer Name", TEXT),
        Column("roNumber", "RO Number", TEXT),
        Column("serviceClosedDate", "Service Closed Date", TEXT),
        Column("videosSent", "Videos Sent"),
        Column("videoViews", "Video Views", UNAVAILABLE),
        Column("textsSent", "Texts Sent"),
        Column("repliesReceived", "Replies Received"),
        Column("averageResponseTime", "Average Response Time (seconds)"),
    ]),
    credential_source=INDEX_DB,
    collect=collect_video_ro,
)

REPORTS = {r.name: r for r in (RECALL_BDC, RECALL_ROI, VIDEO, VIDEO_RO)}


def get_report(name: Optional[str]) -> ReportDefinition:
    """
    Raises:
        KeyError: If no report has that name.
    """
    return REPORTS[name]

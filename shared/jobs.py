"""
Job payload model shared by the Lambda worker and the HTTP API.
"""

import json
from datetime import datetime, time, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from shared.errors import ConfigurationError


def _parse_datetime(value: Any, end_of_day: bool = False) -> Any:
    if not isinstance(value, str):
        return value
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    # bare YYYY-MM-DD end dates include the whole day
    if end_of_day and len(text) == 10:
        parsed = datetime.combine(parsed.date(), time(23, 59, 59))
    return parsed


class ReportJob(BaseModel):
    """
    One report request.
    Field aliases keep the camelCase names callers already send.
    """

    model_config = ConfigDict(populate_by_name=True)

    report: Optional[str] = None
    dealer_ids: List[str] = Field(default_factory=list, alias="dealerIDs")
    integralink_codes: List[str] = Field(default_factory=list, alias="dealershipIntegralinkCodes")
    start_date: datetime = Field(alias="startDate")
    end_date: datetime = Field(alias="endDate")
    email_recipients: List[str] = Field(default_factory=list, alias="emailRecipients")
    reply_to: Optional[str] = Field(default=None, alias="replyTo")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    output_format: str = Field(default="csv", alias="format")

    @field_validator("start_date", mode="before")
    @classmethod
    def _start(cls, v):
        return _parse_datetime(v)

    @field_validator("end_date", mode="before")
    @classmethod
    def _end(cls, v):
        return _parse_datetime(v, end_of_day=True)

    @property
    def group_name(self) -> Optional[str]:
        return self.metadata.get("dealerGroupName")


def parse_job(payload: Mapping[str, Any]) -> ReportJob:
    """
    Validate a job payload.
    Raises:
        ConfigurationError: Naming each missing or invalid field.
    """
    try:
        job = ReportJob.model_validate(payload)
    except ValidationError as e:
        problems = []
        for err in e.errors():
            field = ".".join(str(part) for part in err["loc"]) or "payload"
            problems.append(f"{field} ({err['msg']})")
        raise ConfigurationError(f"Invalid report job: {'; '.join(problems)}") from e
    if job.start_date > job.end_date:
        raise ConfigurationError("startDate must not be after endDate")
    return job


def job_payload(event: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Unwrap the job from an SQS event (Records[0].body) or accept a direct invocation payload.
    """
    records = event.get("Records")
    if records:
        body = records[0].get("body") or "{}"
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Record body is not valid JSON: {e}") from e
    return dict(event)

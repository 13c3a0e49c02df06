"""crm-autopilot — Renewal reminders, lead digests and staged lead imports over workbook tables."""

__version__ = "0.2.0"

CANCELLATION_TRACK = "CancellationTrack"
WORKING_LEADS = "WorkingLeads"
LEAD_STAGE = "LeadStage"
SETUP = "SetUp"
LOGS = "Logs"

TABLE_NAMES: list[str] = [CANCELLATION_TRACK, WORKING_LEADS, LEAD_STAGE, SETUP, LOGS]

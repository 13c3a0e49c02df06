"""Action dispatch — route a named action to its handler.

Every invocation reads the SetUp table once, configures logging from it and
threads the resulting :class:`ActionContext` into exactly one handler.
Failures never escape :func:`invoke`; they come back as a failed
:class:`RunReport`, rendered by :func:`response_text` as ``"Error: ..."``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from crm_autopilot import (
    CANCELLATION_TRACK,
    LEAD_STAGE,
    LOGS,
    WORKING_LEADS,
    __version__,
)
from crm_autopilot.config import (
    DEFAULT_LOG_LEVEL,
    MONTHLY_LEADS_EMAILS,
    RENEWAL_EMAILS,
    Settings,
    load_settings,
)
from crm_autopilot.eligibility import recalculate_follow_up_dates, scan_due_today
from crm_autopilot.errors import TransportError
from crm_autopilot.io import TableStore, apply_writes
from crm_autopilot.logs import setup_logging
from crm_autopilot.models import RunReport
from crm_autopilot.notify import (
    Notifier,
    due_digest_subject,
    format_due_digest,
    format_working_leads_digest,
    working_leads_subject,
)
from crm_autopilot.reconcile import apply_reconciliation, reconcile
from crm_autopilot.utils import utcnow_iso

logger = logging.getLogger(__name__)

SUCCESS = "Success"


class Action(str, Enum):
    CHECK_AND_NOTIFY_RENEWALS = "checkAndNotifyRenewals"
    NOTIFY_MONTHLY_WORKING_LEADS = "notifyMonthlyWorkingLeads"
    UPDATE_RENEWAL_REMINDER_DATES = "updateRenewalReminderDates"
    IMPORT_LEADS_FROM_STAGING = "importLeadsFromStaging"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, name: object) -> Action:
        """Exact, case-sensitive match on the action name; anything else is UNKNOWN."""
        for action in cls:
            if action is not cls.UNKNOWN and action.value == name:
                return action
        return cls.UNKNOWN


@dataclass
class ActionContext:
    store: TableStore
    settings: Settings
    notifier: Notifier
    today: datetime


def _report(action: Action, **kwargs: object) -> RunReport:
    return RunReport(
        action=action.value,
        created_at_utc=utcnow_iso(),
        version=__version__,
        **kwargs,  # type: ignore[arg-type]
    )


def _fetch(ctx: ActionContext, table: str) -> list[list[object]]:
    rows = ctx.store.get_all_rows(table)
    logger.info("Fetched %d rows from %s", max(len(rows) - 1, 0), table)
    return rows


def _deliver(ctx: ActionContext, attribute: str, subject: str, body: str) -> bool:
    """Send one message; delivery failures are logged, not raised."""
    recipients = ctx.settings.recipients(attribute)
    logger.debug("Recipients fetched from SetUp (%s): %s", attribute, ", ".join(recipients))
    try:
        ctx.notifier.send(recipients, subject, body)
    except TransportError as exc:
        logger.error("Delivery of %r failed: %s", subject, exc)
        return False
    logger.info("%s email sent successfully.", subject)
    return True


# ── Handlers ─────────────────────────────────────────────────────


def check_and_notify_renewals(ctx: ActionContext) -> RunReport:
    """Email today's due follow-ups, then flag them as notified."""
    logger.info("Started %s", Action.CHECK_AND_NOTIFY_RENEWALS.value)
    scan = scan_due_today(_fetch(ctx, CANCELLATION_TRACK), ctx.today)

    delivered = False
    if scan.due_leads:
        delivered = _deliver(
            ctx,
            RENEWAL_EMAILS,
            due_digest_subject(ctx.today),
            format_due_digest(scan.due_leads),
        )
        apply_writes(ctx.store, CANCELLATION_TRACK, scan.mutations)

    logger.info("Total reminders sent: %d", len(scan.due_leads))
    return _report(
        Action.CHECK_AND_NOTIFY_RENEWALS,
        counts={"due": len(scan.due_leads), "delivered": int(delivered)},
    )


def notify_monthly_working_leads(ctx: ActionContext) -> RunReport:
    """Email a numbered dump of the WorkingLeads table."""
    logger.info("Started %s", Action.NOTIFY_MONTHLY_WORKING_LEADS.value)
    rows = _fetch(ctx, WORKING_LEADS)
    delivered = _deliver(
        ctx,
        MONTHLY_LEADS_EMAILS,
        working_leads_subject(ctx.today),
        format_working_leads_digest(rows),
    )
    return _report(
        Action.NOTIFY_MONTHLY_WORKING_LEADS,
        counts={"delivered": int(delivered)},
    )


def update_renewal_reminder_dates(ctx: ActionContext) -> RunReport:
    """Rewrite every follow-up date as renewal date minus 42 days."""
    logger.info("Started %s", Action.UPDATE_RENEWAL_REMINDER_DATES.value)
    recalc = recalculate_follow_up_dates(_fetch(ctx, CANCELLATION_TRACK))
    apply_writes(ctx.store, CANCELLATION_TRACK, recalc.writes)
    logger.info("Total renewal reminder dates updated: %d", recalc.updated_count)
    return _report(
        Action.UPDATE_RENEWAL_REMINDER_DATES,
        counts={"updated": recalc.updated_count},
    )


def import_leads_from_staging(ctx: ActionContext) -> RunReport:
    """Copy new LeadStage rows into WorkingLeads and annotate their status."""
    logger.info("Started %s", Action.IMPORT_LEADS_FROM_STAGING.value)
    params = ctx.settings.import_settings()
    logger.debug("Primary Key Destination Column: %s", params.primary_key_destination)
    logger.debug("Primary Key Source Column: %s", params.primary_key_source)
    logger.debug("Lead Import Status Column: %s", params.status_column)
    logger.debug(
        "Column Mappings: %s",
        ", ".join(f"{m.destination}<-{m.source}" for m in params.mapping) or "(none)",
    )

    staging = _fetch(ctx, LEAD_STAGE)
    destination = _fetch(ctx, WORKING_LEADS)
    result = reconcile(
        staging,
        destination,
        params.mapping,
        params.primary_key_destination,
        params.primary_key_source,
        params.status_column,
    )
    apply_reconciliation(ctx.store, LEAD_STAGE, WORKING_LEADS, result)

    logger.info(
        "Lead Import Complete. Imported: %d, Duplicates: %d",
        result.imported,
        result.duplicates,
    )
    return _report(
        Action.IMPORT_LEADS_FROM_STAGING,
        counts={
            "imported": result.imported,
            "duplicates": result.duplicates,
            "skipped": result.skipped,
        },
    )


HANDLERS: dict[Action, Callable[[ActionContext], RunReport]] = {
    Action.CHECK_AND_NOTIFY_RENEWALS: check_and_notify_renewals,
    Action.NOTIFY_MONTHLY_WORKING_LEADS: notify_monthly_working_leads,
    Action.UPDATE_RENEWAL_REMINDER_DATES: update_renewal_reminder_dates,
    Action.IMPORT_LEADS_FROM_STAGING: import_leads_from_staging,
}


# ── Dispatch ─────────────────────────────────────────────────────


def dispatch(name: object, ctx: ActionContext) -> RunReport:
    """Run the handler for *name*; unknown names are logged and skipped."""
    action = Action.parse(name)
    if action is Action.UNKNOWN:
        logger.warning("Unknown action received: %s", name)
        return _report(Action.UNKNOWN, status="skipped", message=f"Unknown action: {name}")

    handler = HANDLERS[action]
    try:
        return handler(ctx)
    except Exception as exc:
        logger.error("Exception in %s: %s", action.value, exc)
        return _report(action, status="failed", message=str(exc))


def _log_store(store: TableStore) -> TableStore | None:
    return store if store.has_table(LOGS) else None


def invoke(
    name: object,
    store: TableStore,
    notifier: Notifier,
    *,
    today: datetime | None = None,
    console: bool = True,
) -> RunReport:
    """Resolve settings, configure logging, dispatch *name* and persist the store.

    The store is saved whatever the outcome, so writes made before a
    failure are kept.
    """
    try:
        settings = load_settings(store)
    except Exception as exc:
        setup_logging(DEFAULT_LOG_LEVEL, _log_store(store), console=console)
        logger.error("Exception loading settings: %s", exc)
        report = _report(Action.parse(name), status="failed", message=str(exc))
    else:
        setup_logging(settings.log_level, _log_store(store), console=console)
        logger.debug("Incoming request: action=%s", name)
        ctx = ActionContext(
            store=store,
            settings=settings,
            notifier=notifier,
            today=today or datetime.now(),
        )
        report = dispatch(name, ctx)

    try:
        store.save()
    except OSError as exc:
        logger.error("Could not save workbook: %s", exc)
        report = _report(Action.parse(name), status="failed", message=f"Save failed: {exc}")
    return report


def response_text(report: RunReport) -> str:
    """Caller-facing reply: ``"Success"`` or ``"Error: <message>"``."""
    if report.status == "failed":
        return f"Error: {report.message}"
    return SUCCESS

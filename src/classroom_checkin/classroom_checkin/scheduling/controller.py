from __future__ import annotations

import click
from flask import Flask, jsonify

from ..common.http import token_required
from ..container import Container


def register(app: Flask, container: Container) -> None:
    """HTTP and CLI triggers for the sweeps; the cadence belongs to cron or the caller."""

    guarded = token_required(app)

    @app.route("/tasks/reconcile-absences", methods=["POST"], endpoint="task_reconcile_absences")
    @guarded
    def task_reconcile_absences():
        summary = container.absence_reconciler.sweep()
        return jsonify({"success": True, **summary.to_dict()})

    @app.route("/tasks/send-reminders", methods=["POST"], endpoint="task_send_reminders")
    @guarded
    def task_send_reminders():
        summary = container.reminder_scheduler.sweep()
        return jsonify({"success": True, **summary.to_dict()})

    @app.cli.command("reconcile-absences")
    def reconcile_absences_command():
        """Close ended sessions and record absences (run every 5 minutes)."""
        summary = container.absence_reconciler.sweep()
        click.echo(
            f"sessions closed={summary.sessions_closed} "
            f"absences={summary.absences_recorded} failures={summary.failures}"
        )

    @app.cli.command("send-reminders")
    def send_reminders_command():
        """Open today's sessions and push check-in prompts (run every minute)."""
        summary = container.reminder_scheduler.sweep()
        click.echo(
            f"sessions opened={summary.sessions_opened} "
            f"prompts sent={summary.prompts_sent} failures={summary.failures}"
        )

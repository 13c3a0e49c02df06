from crm_autopilot import cli

cli.app()

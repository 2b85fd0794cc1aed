"""Core services: diff, planning, session control, reporting, orchestration."""

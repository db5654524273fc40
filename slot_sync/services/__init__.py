"""Sync core (rate limiter, provider client, reconciliation, orchestrator) and read-side inventory queries."""

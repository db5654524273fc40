"""
Centralized constants for the scheduler and read API.

Change job IDs or windows here instead of scattering literals across main and jobs.
"""

# Scheduler job IDs (must match ids used in main.py add_job)
INVENTORY_DAILY_JOB_ID = "inventory_daily"
INVENTORY_NEAR_TERM_JOB_ID = "inventory_near_term"
INVENTORY_TODAY_JOB_ID = "inventory_today"

# Cadence windows as (start offset from today, number of days).
# Overlap is intended: near-term dates are refreshed far more often than the long horizon.
DAILY_WINDOW = (1, 30)      # T+1 .. T+30, once a day at midnight
NEAR_TERM_WINDOW = (0, 7)   # T+0 .. T+6, every 4 hours
TODAY_WINDOW = (0, 1)       # T only, every minute

NEAR_TERM_INTERVAL_HOURS = 4
TODAY_INTERVAL_MINUTES = 1

# GET /dates looks this many days ahead (today inclusive)
DATES_HORIZON_DAYS = 60

# Provider path; product id and date are filled per request
INVENTORY_PATH = "/api/v1/inventory/{product_id}"

"""
HTTP surface: cron triggers, on-demand checks, notification inbox.
"""

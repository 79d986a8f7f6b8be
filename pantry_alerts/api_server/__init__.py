"""
API server package: HTTP/REST interface to expiration alerts.

Lists, generates and dismisses alerts for a user and exposes the active-alert
count and the retention cleanup hook. Delegates to pantry_alerts.alerts.
"""

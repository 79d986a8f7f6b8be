"""
pantry-alerts: expiration alerts for a food-inventory app.

Turns per-item waste-risk scores into user-facing alerts, keeps at most one
active alert per item, lets users dismiss them, and purges dismissed alerts
after a retention window. Exposed over HTTP (FastAPI), a CLI, and a periodic
background runner.
"""

__version__ = "0.1.0"

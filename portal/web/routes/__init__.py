"""Routers for the portal web app (auth, dashboard)."""

"""Web package

Marks `portal.web` as a proper Python package so `from portal.web import main`
works in tests and in the container image.
"""

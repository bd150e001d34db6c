"""Portal package

Role-gated dashboard for the ISTE student chapter portal.
"""

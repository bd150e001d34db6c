"""Identity & access context

Framework-free policy core: roles, role stores, the role resolver, the route
guard and the session source consumed by the web tier.
"""

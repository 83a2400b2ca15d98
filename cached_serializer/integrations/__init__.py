"""
Host integrations that publish committed changes to a ``ChangeFeed``.
"""

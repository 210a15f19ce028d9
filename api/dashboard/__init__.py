"""
Read-time dashboard views over ingested collections.
"""

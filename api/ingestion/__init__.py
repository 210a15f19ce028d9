"""
Collection ingest: merge-by-id into JSON snapshots with CSV projections.
"""

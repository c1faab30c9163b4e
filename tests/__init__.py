"""Firestore mirror test suite.

- unit/test_paths.py: collection path patterns and identity extraction
- unit/test_timestamps.py: timestamp priority tiers
- unit/test_rows.py: row assembly and destination columns
- unit/test_pipeline.py: end-to-end import runs against in-memory collaborators
"""

"""One-time bulk export of a Firestore collection into a BigQuery table."""

__version__ = "0.1.0"

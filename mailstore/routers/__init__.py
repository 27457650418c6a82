"""HTTP routers for the email ingestion service."""

"""HTTP API for salary disbursement."""

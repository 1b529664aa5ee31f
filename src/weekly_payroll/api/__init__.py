"""HTTP API for weekly payroll operations."""
